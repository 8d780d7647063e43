import datetime
import io
import os

import jwt
import pytest

# Must be set before main is imported: the module-level app reads them.
os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("LOG_FILE_PATH", "/tmp/hexbear_test.log")

from perception import PerceptionResult, PerceptionUnavailableError, ScoredLabel

TEST_JWT_SECRET = "test-secret"


def make_perception(labels=(), objects=(), text=(), logos=()):
    """labels may be plain strings (confidence 1.0) or (text, confidence) pairs."""
    scored = tuple(
        ScoredLabel(text=item) if isinstance(item, str) else ScoredLabel(text=item[0], confidence=item[1])
        for item in labels
    )
    return PerceptionResult(labels=scored, object_names=tuple(objects),
                            text_tokens=tuple(text), logo_names=tuple(logos))


ITEM_PET_BOTTLE = make_perception(labels=[("plastic bottle", 0.9)], text=["PETE"])
ITEM_PLASTIC_BOTTLE = make_perception(labels=[("plastic bottle", 0.9)])
ITEM_STYROFOAM = make_perception(text=["6"])
ITEM_UNKNOWN = make_perception(labels=[("person", 0.95)])
PROOF_RECYCLING_BIN = make_perception(labels=[("recycling bin", 0.95)], text=["RECYCLING ONLY"])
PROOF_TRASH_BIN = make_perception(labels=[("trash bin", 1.0)])


class FakePersistence:
    """In-memory stand-in for FirestorePersistence."""

    def __init__(self):
        self.blobs = {}
        self.action_logs = {}
        self.ledger = {}
        self.profiles = {}
        self.energy_readings = []
        self.fail_uploads = False
        self.fail_action_log = False
        self.fail_award = False
        self.award_calls = 0

    def upload_blob(self, path, data, content_type='image/jpeg'):
        if self.fail_uploads:
            raise IOError("storage is down")
        self.blobs[path] = (data, content_type)
        return f"gs://test-bucket/{path}"

    def insert_action_log(self, user_id, action_type, details, points_awarded, image_ref=None, log_id=None):
        if self.fail_action_log:
            raise IOError("firestore write failed")
        log_id = log_id or f"log-{len(self.action_logs) + 1}"
        self.action_logs[log_id] = {
            'userId': user_id, 'type': action_type, 'details': details,
            'pointsAwarded': points_awarded, 'imagePath': image_ref,
            'timestamp': datetime.datetime(2026, 10, 1, 12, 0, 0),
        }
        return log_id

    def award_points(self, user_id, award_id, points, source='recycle'):
        self.award_calls += 1
        if self.fail_award:
            raise IOError("ledger write failed")
        if award_id in self.ledger:
            return False
        self.ledger[award_id] = {'userId': user_id, 'points': points, 'source': source}
        return True

    def total_points(self, user_id):
        return sum(entry['points'] for entry in self.ledger.values() if entry['userId'] == user_id)

    def fetch_profile(self, user_id):
        return self.profiles.get(user_id)

    def update_fcm_token(self, user_id, fcm_token):
        self.profiles.setdefault(user_id, {})['fcmToken'] = fcm_token

    def latest_energy_reading(self, user_id):
        readings = [r for r in self.energy_readings if r['userId'] == user_id]
        return readings[-1] if readings else None

    def insert_energy_reading(self, user_id, kwh, co2_kg, points):
        self.energy_readings.append({'userId': user_id, 'kWh': kwh, 'co2': co2_kg, 'points': points})
        return f"reading-{len(self.energy_readings)}"

    def recent_actions(self, user_id, limit=20):
        entries = [dict(data, actionId=log_id) for log_id, data in self.action_logs.items()
                   if data['userId'] == user_id]
        return entries[:limit]


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.expiries = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self.data[key] = value
        self.expiries[key] = ex
        return True

    def delete(self, key):
        self.expiries.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0


class ScriptedPerceive:
    """Returns the queued PerceptionResults in order; queued exceptions are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def queue(self, *results):
        self.results.extend(results)

    def __call__(self, image_bytes, content_type):
        self.calls.append((image_bytes, content_type))
        if not self.results:
            raise AssertionError("perceive called more times than scripted")
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def persistence():
    return FakePersistence()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def perceive():
    return ScriptedPerceive()


@pytest.fixture
def vision_down():
    return PerceptionUnavailableError("connection reset")


@pytest.fixture
def completed_receipts():
    return []


@pytest.fixture
def app(persistence, fake_redis, perceive, completed_receipts):
    from main import create_app
    from api.attempt_store import AttemptStore

    app = create_app(
        config={'TESTING': True, 'RATELIMIT_ENABLED': False, 'JWT_SECRET_KEYS': [TEST_JWT_SECRET]},
        persistence=persistence,
        attempt_store=AttemptStore(lambda: fake_redis, 600),
        perceive=perceive,
        on_completed=lambda user_id, receipt: completed_receipts.append((user_id, receipt)),
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def make_token(user_id, secret=TEST_JWT_SECRET, expires_in=3600):
    payload = {
        'user_id': user_id,
        'exp': datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def auth_headers():
    return {'Authorization': f"Bearer {make_token('user-1')}"}


@pytest.fixture
def other_user_headers():
    return {'Authorization': f"Bearer {make_token('user-2')}"}


def photo_upload(name='photo.jpg', data=b'\xff\xd8fake-jpeg', content_type='image/jpeg'):
    return {'photo': (io.BytesIO(data), name, content_type)}
