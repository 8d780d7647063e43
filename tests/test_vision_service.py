import json

import pytest
import redis
from google.genai import errors

import vision_service
from perception import PerceptionUnavailableError

ANNOTATION = {
    'labelAnnotations': [{'description': 'recycling bin', 'score': 0.9}],
    'textAnnotations': [{'description': 'RECYCLE'}],
}


class KeyIndexRedis:
    def __init__(self, index=None):
        self.values = {} if index is None else {vision_service.KEY_INDEX_CACHE_KEY: str(index)}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value):
        self.values[key] = str(value)


@pytest.fixture
def redis_client(monkeypatch):
    client = KeyIndexRedis()
    monkeypatch.setattr(vision_service.dependencies, 'get_redis_client', lambda: client)
    return client


@pytest.fixture
def api_keys(monkeypatch):
    keys = ['key-a', 'key-b', 'key-c']
    monkeypatch.setattr(vision_service, 'get_gemini_api_keys', lambda: keys)
    return keys


def test_annotation_is_converted_to_perception(monkeypatch, redis_client, api_keys):
    monkeypatch.setattr(vision_service, '_request_annotation', lambda key, data, ct: json.dumps(ANNOTATION))
    perception = vision_service.annotate_image(b'not-an-image')
    assert perception.labels[0].text == 'recycling bin'
    assert perception.text_tokens == ('RECYCLE',)


def test_code_fences_are_stripped(monkeypatch, redis_client, api_keys):
    fenced = f"```json\n{json.dumps(ANNOTATION)}\n```"
    monkeypatch.setattr(vision_service, '_request_annotation', lambda key, data, ct: fenced)
    assert vision_service.annotate_image(b'not-an-image').text_tokens == ('RECYCLE',)


def test_rotates_to_next_key_and_remembers_it(monkeypatch, redis_client, api_keys):
    tried = []

    def request(key, data, ct):
        tried.append(key)
        if key == 'key-a':
            raise RuntimeError("quota exceeded")
        return json.dumps(ANNOTATION)

    monkeypatch.setattr(vision_service, '_request_annotation', request)
    vision_service.annotate_image(b'not-an-image')
    assert tried == ['key-a', 'key-b']
    assert redis_client.values[vision_service.KEY_INDEX_CACHE_KEY] == '1'


def test_starts_from_remembered_key(monkeypatch, api_keys):
    client = KeyIndexRedis(index=2)
    monkeypatch.setattr(vision_service.dependencies, 'get_redis_client', lambda: client)
    tried = []

    def request(key, data, ct):
        tried.append(key)
        return json.dumps(ANNOTATION)

    monkeypatch.setattr(vision_service, '_request_annotation', request)
    vision_service.annotate_image(b'not-an-image')
    assert tried == ['key-c']


def test_all_keys_failing_is_a_transport_error(monkeypatch, redis_client, api_keys):
    def request(key, data, ct):
        raise ConnectionError("network unreachable")

    monkeypatch.setattr(vision_service, '_request_annotation', request)
    with pytest.raises(PerceptionUnavailableError) as excinfo:
        vision_service.annotate_image(b'not-an-image')
    assert not excinfo.value.provider_error


@pytest.mark.parametrize("raw", ["", "not json at all", "[1, 2]"])
def test_unusable_response_is_a_provider_error(monkeypatch, redis_client, api_keys, raw):
    monkeypatch.setattr(vision_service, '_request_annotation', lambda key, data, ct: raw)
    with pytest.raises(PerceptionUnavailableError) as excinfo:
        vision_service.annotate_image(b'not-an-image')
    assert excinfo.value.provider_error


def test_error_payload_is_a_provider_error(monkeypatch, redis_client, api_keys):
    payload = json.dumps({'error': {'message': 'unsupported image'}})
    monkeypatch.setattr(vision_service, '_request_annotation', lambda key, data, ct: payload)
    with pytest.raises(PerceptionUnavailableError) as excinfo:
        vision_service.annotate_image(b'not-an-image')
    assert excinfo.value.provider_error


def test_no_keys_configured(monkeypatch, redis_client):
    monkeypatch.setattr(vision_service, 'get_gemini_api_keys', lambda: [])
    with pytest.raises(PerceptionUnavailableError):
        vision_service.annotate_image(b'not-an-image')


def test_works_without_redis(monkeypatch, api_keys):
    monkeypatch.setattr(vision_service.dependencies, 'get_redis_client', lambda: None)
    monkeypatch.setattr(vision_service, '_request_annotation', lambda key, data, ct: json.dumps(ANNOTATION))
    assert vision_service.annotate_image(b'not-an-image').labels


class DownRedis:
    def get(self, key):
        raise redis.exceptions.ConnectionError("Connection refused")

    def set(self, key, value):
        raise redis.exceptions.ConnectionError("Connection refused")


def test_redis_errors_fall_back_to_first_key(monkeypatch, api_keys):
    monkeypatch.setattr(vision_service.dependencies, 'get_redis_client', lambda: DownRedis())
    tried = []

    def request(key, data, ct):
        tried.append(key)
        return json.dumps(ANNOTATION)

    monkeypatch.setattr(vision_service, '_request_annotation', request)
    assert vision_service.annotate_image(b'not-an-image').labels
    assert tried == ['key-a']


def test_corrupt_key_index_falls_back_to_first_key(monkeypatch, api_keys):
    client = KeyIndexRedis(index='garbage')
    monkeypatch.setattr(vision_service.dependencies, 'get_redis_client', lambda: client)
    monkeypatch.setattr(vision_service, '_request_annotation', lambda key, data, ct: json.dumps(ANNOTATION))
    vision_service.annotate_image(b'not-an-image')
    assert client.values[vision_service.KEY_INDEX_CACHE_KEY] == '0'


def test_api_errors_on_every_key_are_a_provider_error(monkeypatch, redis_client, api_keys):
    def request(key, data, ct):
        raise errors.ServerError(503, {'error': {'code': 503, 'message': 'overloaded', 'status': 'UNAVAILABLE'}})

    monkeypatch.setattr(vision_service, '_request_annotation', request)
    with pytest.raises(PerceptionUnavailableError) as excinfo:
        vision_service.annotate_image(b'not-an-image')
    assert excinfo.value.provider_error


def test_api_error_on_one_key_still_rotates(monkeypatch, redis_client, api_keys):
    def request(key, data, ct):
        if key == 'key-a':
            raise errors.ClientError(429, {'error': {'code': 429, 'message': 'quota', 'status': 'RESOURCE_EXHAUSTED'}})
        return json.dumps(ANNOTATION)

    monkeypatch.setattr(vision_service, '_request_annotation', request)
    assert vision_service.annotate_image(b'not-an-image').labels
    assert redis_client.values[vision_service.KEY_INDEX_CACHE_KEY] == '1'


def test_malformed_annotation_items_are_a_provider_error(monkeypatch, redis_client, api_keys):
    payload = json.dumps({'labelAnnotations': ['bin']})
    monkeypatch.setattr(vision_service, '_request_annotation', lambda key, data, ct: payload)
    with pytest.raises(PerceptionUnavailableError) as excinfo:
        vision_service.annotate_image(b'not-an-image')
    assert excinfo.value.provider_error
