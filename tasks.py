# FILE: hexbear-backend/tasks.py

import logging
from io import BytesIO
from firebase_admin import messaging
from PIL import Image

import dependencies
from celery_worker import celery_app
from firebase_init import initialize_firebase
from logging_config import setup_logging

# --- SETUP & CONFIG ---
setup_logging()

THUMBNAIL_SIZE = (256, 256)


def _split_gcs_uri(gcs_uri):
    """'gs://bucket/path/to/blob' -> ('bucket', 'path/to/blob')"""
    bucket_name, _, blob_name = gcs_uri.removeprefix("gs://").partition("/")
    return bucket_name, blob_name


def make_thumbnail(image_bytes):
    """Returns a WEBP thumbnail of the image as a BytesIO positioned at 0."""
    with Image.open(BytesIO(image_bytes)) as img:
        if img.mode in ('RGBA', 'LA'):
            background = Image.new(img.mode[:-1], img.size, (255, 255, 255))
            background.paste(img, img.getchannel('A'))
            img = background

        img.thumbnail(THUMBNAIL_SIZE)
        output_buffer = BytesIO()
        img.convert('RGB').save(output_buffer, "WEBP", quality=85)
        output_buffer.seek(0)
    return output_buffer


@celery_app.task(name="create_disposal_thumbnail", max_retries=3, default_retry_delay=60)
def create_disposal_thumbnail(gcs_uri, attempt_id):
    """Stores a small WEBP copy of a disposal photo and links it from the action log."""
    logging.info(f"Creating thumbnail for attempt {attempt_id} from {gcs_uri}")
    bucket_name, blob_name = _split_gcs_uri(gcs_uri)
    bucket = dependencies.get_storage_client().bucket(bucket_name)
    source_blob = bucket.blob(blob_name)
    try:
        if not source_blob.exists():
            logging.error(f"Disposal photo not found at {gcs_uri}")
            return

        output_buffer = make_thumbnail(source_blob.download_as_bytes())
        thumb_name = f"disposal_thumbs/{blob_name.rsplit('.', 1)[0]}.webp"
        dest_blob = bucket.blob(thumb_name)
        dest_blob.upload_from_file(output_buffer, content_type='image/webp')

        field = 'details.proofThumbnailRef' if '/proof.' in blob_name else 'details.itemThumbnailRef'
        dependencies.get_db().collection('actions').document(attempt_id).update({field: f"gs://{bucket_name}/{thumb_name}"})
        logging.info(f"Stored thumbnail {thumb_name} for attempt {attempt_id}")
    except Exception as e:
        logging.error(f"Failed to create thumbnail for {gcs_uri}: {e}", exc_info=True)


@celery_app.task(name="notify_disposal_completed")
def notify_disposal_completed(user_id, payload):
    """Sends a data-only FCM message with the disposal outcome."""
    initialize_firebase()
    try:
        user_doc = dependencies.get_db().collection('users').document(user_id).get(['fcmToken'])
        fcm_token = user_doc.to_dict().get('fcmToken') if user_doc.exists else None
        if not fcm_token:
            return
        data = {key: str(value) for key, value in payload.items() if value is not None}
        message = messaging.Message(token=fcm_token, data=data, android=messaging.AndroidConfig(priority="high"))
        messaging.send(message)
        logging.info(f"Sent disposal notification to {user_id} for attempt {payload.get('attemptId')}")
    except Exception as e:
        logging.error(f"Failed to send FCM for {user_id}: {e}", exc_info=True)


def queue_completion_tasks(user_id, receipt):
    """Completion hook: thumbnails for uploaded photos and a push notification."""
    for image_ref in (receipt.item_image_ref, receipt.proof_image_ref):
        if image_ref:
            create_disposal_thumbnail.delay(image_ref, receipt.attempt_id)
    notify_disposal_completed.delay(user_id, {
        'type': 'DISPOSAL_COMPLETED',
        'attemptId': receipt.attempt_id,
        'materialId': receipt.material_id,
        'pointsAwarded': receipt.points_awarded,
        'verificationOutcome': receipt.verification_outcome.value,
    })
