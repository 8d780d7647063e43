import pytest

from perception import PerceptionUnavailableError, perception_from_annotate_response


def test_parses_all_annotation_kinds():
    perception = perception_from_annotate_response({
        'labelAnnotations': [{'description': 'Plastic bottle', 'score': 0.91}, {'description': 'Drink'}],
        'localizedObjectAnnotations': [{'name': 'Bottle', 'score': 0.8}],
        'textAnnotations': [{'description': 'PETE'}, {'description': '1'}],
        'logoAnnotations': [{'description': 'Mobius loop'}],
    })
    assert [(l.text, l.confidence) for l in perception.labels] == [('Plastic bottle', 0.91), ('Drink', 0.0)]
    assert perception.object_names == ('Bottle',)
    assert perception.text_tokens == ('PETE', '1')
    assert perception.logo_names == ('Mobius loop',)
    assert [t.text for t in perception.scored_terms()] == ['Plastic bottle', 'Drink', 'Bottle']
    assert perception.scored_terms()[-1].confidence == 1.0


def test_missing_sections_yield_empty_result():
    perception = perception_from_annotate_response({})
    assert perception.is_empty()


def test_out_of_range_scores_are_clamped():
    perception = perception_from_annotate_response({
        'labelAnnotations': [{'description': 'bin', 'score': 1.7}, {'description': 'can', 'score': 'n/a'}],
    })
    assert [l.confidence for l in perception.labels] == [1.0, 0.0]


def test_blank_entries_are_skipped():
    perception = perception_from_annotate_response({
        'labelAnnotations': [{'description': ''}],
        'textAnnotations': [{'description': None}, {}],
    })
    assert perception.is_empty()


def test_error_payload_is_a_provider_error():
    with pytest.raises(PerceptionUnavailableError) as excinfo:
        perception_from_annotate_response({'error': {'message': 'image too small'}})
    assert excinfo.value.provider_error
    assert 'image too small' in str(excinfo.value)


@pytest.mark.parametrize("payload", [
    {'labelAnnotations': ['bin']},
    {'labelAnnotations': 5},
    {'localizedObjectAnnotations': [{'score': 0.4, 'name': ['Bottle']}]},
    {'textAnnotations': [{'description': 42}]},
])
def test_malformed_annotations_are_a_provider_error(payload):
    with pytest.raises(PerceptionUnavailableError) as excinfo:
        perception_from_annotate_response(payload)
    assert excinfo.value.provider_error
