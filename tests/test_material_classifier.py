import pytest

from conftest import make_perception
from material_classifier import classify, score_labels
from recycling_data import RESIN_CODE_PROFILES, MATERIAL_TYPES


@pytest.mark.parametrize("text, code", [
    ("PETE", "1"),
    ("pet", "1"),
    ("HDPE", "2"),
    ("PVC", "3"),
    ("V", "3"),
    ("LDPE", "4"),
    ("PP", "5"),
    ("PS", "6"),
    ("<PP>", "5"),
    ("2 HDPE", "2"),
])
def test_resin_abbreviation_in_text_wins(text, code):
    perception = make_perception(text=[text])
    assert classify(perception) == RESIN_CODE_PROFILES[code]


def test_resin_code_beats_strong_conflicting_labels():
    perception = make_perception(
        labels=["glass bottle", "glass jar", "beverage can"],
        text=["Made in Canada", "HDPE"],
    )
    assert classify(perception).id == "resin_2"


def test_abbreviation_must_be_a_whole_word():
    # "pets" and "stepped" contain "pet"/"pp" but are not resin words
    perception = make_perception(text=["pets welcome", "stepped"])
    assert classify(perception) is None


@pytest.mark.parametrize("fragment, code", [
    ("1", "1"),
    ("♳ 1", "1"),
    ("(5)", "5"),
    (" 7 ", "7"),
])
def test_standalone_digit_in_short_fragment(fragment, code):
    assert classify(make_perception(text=[fragment])) == RESIN_CODE_PROFILES[code]


@pytest.mark.parametrize("fragment", [
    "12",          # part of a longer number
    "2025",
    "$3.99 each",  # long fragment
    "Best before 05/2026",
    "8",           # outside 1-7
    "0",
])
def test_digit_rejected_in_numbers_and_long_fragments(fragment):
    assert classify(make_perception(text=[fragment])) is None


def test_abbreviation_checked_before_digit():
    # The digit fragment comes first but the abbreviation tier has priority
    perception = make_perception(text=["5", "PETE"])
    assert classify(perception).id == "resin_1"


def test_plastic_bottle_label_reaches_threshold():
    perception = make_perception(labels=[("plastic bottle", 0.9)])
    assert classify(perception) == MATERIAL_TYPES["bottle"]


def test_single_weak_label_is_below_threshold():
    perception = make_perception(labels=[("plastic", 0.9)])
    assert score_labels(perception) == {"bottle": 1}
    assert classify(perception) is None


def test_empty_perception_is_unrecognized():
    assert classify(make_perception()) is None


def test_scores_are_additive_across_rules_and_labels():
    perception = make_perception(labels=["plastic bottle"], objects=["Bottle"])
    # plastic bottle(3) + bottle(2) + plastic(1) on the label, bottle(2) on the object
    assert score_labels(perception) == {"bottle": 8}


def test_label_confidence_is_ignored_by_scoring():
    low = make_perception(labels=[("glass jar", 0.05)])
    high = make_perception(labels=[("glass jar", 0.99)])
    assert score_labels(low) == score_labels(high)
    assert classify(low) == MATERIAL_TYPES["glass"]


def test_label_inside_keyword_does_not_match():
    # "bot" and "alum" are substrings of keywords, not the other way round
    perception = make_perception(labels=["bot", "alum"])
    assert score_labels(perception) == {}


def test_highest_score_wins():
    perception = make_perception(labels=["beverage can"])
    # beverage can -> aluminum 3, can -> can 2
    assert score_labels(perception) == {"aluminum": 3, "can": 2}
    assert classify(perception) == MATERIAL_TYPES["aluminum"]


def test_tie_keeps_first_material_hit():
    first_glass = make_perception(labels=["glass", "magazine"])
    first_paper = make_perception(labels=["magazine", "glass"])
    assert classify(first_glass).id == "glass"
    assert classify(first_paper).id == "paper"


def test_object_names_are_scanned():
    perception = make_perception(objects=["Cardboard box"])
    assert classify(perception) == MATERIAL_TYPES["cardboard"]


def test_classify_is_deterministic():
    perception = make_perception(
        labels=[("tin can", 0.7), ("plastic", 0.4), ("paper", 0.6)],
        objects=["Can"],
        text=["Net wt 400g"],
    )
    first = classify(perception)
    second = classify(perception)
    assert first is not None
    assert first.id == second.id
