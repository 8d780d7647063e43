"""
Persistence collaborator backed by Firestore and Cloud Storage.

Points are kept as an append-only ledger (`point_ledger`, one document per
award, keyed by the award id) and a user's total is derived from it. The
action log (`actions`) and photo uploads are independent of the ledger.
"""

import logging
from typing import Any, Dict, List, Optional
from google.cloud import firestore
from google.api_core.exceptions import AlreadyExists

import dependencies

logger = logging.getLogger(__name__)


class FirestorePersistence:
    def __init__(self, db=None, storage_client=None, bucket_name: Optional[str] = None):
        self._db = db
        self._storage_client = storage_client
        self._bucket_name = bucket_name or dependencies.GCS_BUCKET_NAME

    @property
    def db(self):
        if self._db is None:
            self._db = dependencies.get_db()
        return self._db

    @property
    def storage_client(self):
        if self._storage_client is None:
            self._storage_client = dependencies.get_storage_client()
        return self._storage_client

    def insert_action_log(self, user_id: str, action_type: str, details: Dict[str, Any],
                          points_awarded: int, image_ref: Optional[str] = None,
                          log_id: Optional[str] = None) -> str:
        """Writes one action log entry. A given log_id is written at most once (later writes overwrite)."""
        collection = self.db.collection('actions')
        doc_ref = collection.document(log_id) if log_id else collection.document()
        doc_ref.set({
            'userId': user_id,
            'type': action_type,
            'details': details,
            'pointsAwarded': points_awarded,
            'imagePath': image_ref,
            'timestamp': firestore.SERVER_TIMESTAMP,
        })
        logger.info(f"Logged '{action_type}' action {doc_ref.id} for user {user_id} ({points_awarded} pts)")
        return doc_ref.id

    def award_points(self, user_id: str, award_id: str, points: int, source: str = 'recycle') -> bool:
        """
        Appends a ledger entry for this award. Returns False if the award id
        was already recorded, so retries never award twice.
        """
        ledger_ref = self.db.collection('point_ledger').document(award_id)
        try:
            ledger_ref.create({
                'userId': user_id,
                'points': points,
                'source': source,
                'timestamp': firestore.SERVER_TIMESTAMP,
            })
        except AlreadyExists:
            logger.info(f"Award {award_id} already recorded for user {user_id}")
            return False
        logger.info(f"Awarded {points} points to {user_id} ({source}, award {award_id})")
        return True

    def total_points(self, user_id: str) -> int:
        query = self.db.collection('point_ledger').where(filter=firestore.FieldFilter('userId', '==', user_id))
        result = query.sum('points').get()[0][0].value
        return int(result or 0)

    def upload_blob(self, path: str, data: bytes, content_type: str = 'image/jpeg') -> str:
        if not self._bucket_name:
            raise ValueError("GCS_BUCKET_NAME is not configured.")
        blob = self.storage_client.bucket(self._bucket_name).blob(path)
        blob.upload_from_string(data, content_type=content_type)
        logger.info(f"Uploaded {len(data)} bytes to gs://{self._bucket_name}/{path}")
        return f"gs://{self._bucket_name}/{path}"

    def fetch_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        user_doc = self.db.collection('users').document(user_id).get()
        if not user_doc.exists:
            return None
        return user_doc.to_dict()

    def update_fcm_token(self, user_id: str, fcm_token: str):
        self.db.collection('users').document(user_id).set({'fcmToken': fcm_token}, merge=True)

    def latest_energy_reading(self, user_id: str) -> Optional[Dict[str, Any]]:
        query = self.db.collection('energy_readings').where(
            filter=firestore.FieldFilter('userId', '==', user_id)
        ).order_by(
            'timestamp', direction=firestore.Query.DESCENDING
        ).limit(1)
        for doc in query.stream():
            return doc.to_dict()
        return None

    def insert_energy_reading(self, user_id: str, kwh: float, co2_kg: float, points: int) -> str:
        doc_ref = self.db.collection('energy_readings').document()
        doc_ref.set({
            'userId': user_id,
            'kWh': kwh,
            'co2': co2_kg,
            'points': points,
            'timestamp': firestore.SERVER_TIMESTAMP,
        })
        return doc_ref.id

    def recent_actions(self, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        # This query requires a composite index in Firestore on (userId, timestamp desc)
        query = self.db.collection('actions').where(
            filter=firestore.FieldFilter('userId', '==', user_id)
        ).order_by(
            'timestamp', direction=firestore.Query.DESCENDING
        ).limit(limit)

        results = []
        for doc in query.stream():
            data = doc.to_dict()
            data['actionId'] = doc.id
            results.append(data)
        return results
