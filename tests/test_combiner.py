import pytest

from pipeline.combiner import combine_scores


@pytest.mark.parametrize(
    "confidence, forensic, expected",
    [
        (85, 70, 79),
        (100, 100, 100),
        (0, 0, 0),
        (100, 0, 60),
        (0, 100, 40),
        (90, 55, 76),
        (33, 67, 47),
    ],
)
def test_combine_scores(confidence, forensic, expected):
    assert combine_scores(confidence, forensic) == expected


def test_missing_confidence_uses_default():
    assert combine_scores(None, 70) == combine_scores(85, 70)
    assert combine_scores(None, 70, default_confidence=50) == 58


def test_result_is_clamped():
    assert combine_scores(150, 150) == 100
    assert combine_scores(-20, -20) == 0
