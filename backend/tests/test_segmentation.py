import pytest

from videoquiz.errors import ValidationError
from videoquiz.segmentation import (
    ensure_minimum_length,
    merge_fragments,
    segment_transcript,
    word_count,
)
from videoquiz.store import SegmentRecord


def words(token, count):
    return " ".join([token] * count)


def fragment(start, end, text):
    return {"start": start, "end": end, "text": text}


def test_empty_input_gives_no_segments():
    assert segment_transcript({"segments": []}) == []


def test_single_short_fragment_is_kept_verbatim():
    segments = segment_transcript({"segments": [fragment(1.0, 4.5, "  hello there  ")]})
    assert len(segments) == 1
    assert segments[0].text == "hello there"
    assert segments[0].start_time == 1.0
    assert segments[0].end_time == 4.5
    assert segments[0].segment_index == 0


def test_fragments_under_duration_are_joined_with_single_space():
    coarse = merge_fragments(
        [
            fragment(0, 10, "one"),
            fragment(10, 20, "  "),
            fragment(25, 30, "two"),
        ]
    )
    assert len(coarse) == 1
    assert coarse[0].text == "one two"
    assert coarse[0].start_time == 0
    assert coarse[0].end_time == 30


def test_running_duration_decides_split_not_incoming_fragment():
    coarse = merge_fragments(
        [
            fragment(0, 299, "a"),
            fragment(299, 900, "b"),
            fragment(900, 901, "c"),
        ]
    )
    # 299s < 300s so "b" is appended even though it is long by itself.
    assert [s.text for s in coarse] == ["a b", "c"]
    assert coarse[0].end_time == 900


def test_missing_times_default_to_zero_and_one_second():
    coarse = merge_fragments([{"text": "hi"}])
    assert coarse[0].start_time == 0
    assert coarse[0].end_time == 1


def test_long_first_fragment_stands_alone_and_trailing_short_one_is_not_merged_back():
    segments = segment_transcript(
        {"segments": [fragment(0, 310, words("a", 60)), fragment(310, 320, "b")]}
    )
    assert len(segments) == 2
    assert word_count(segments[0].text) == 60
    assert segments[1].text == "b"
    assert [s.segment_index for s in segments] == [0, 1]


def test_short_coarse_segments_merge_forward():
    fragments = [
        fragment(0, 301, words("x", 10)),
        fragment(301, 602, words("y", 45)),
        fragment(602, 903, words("z", 60)),
        fragment(903, 1204, words("w", 5)),
    ]
    assert len(merge_fragments(fragments)) == 4

    segments = segment_transcript({"segments": fragments})
    assert len(segments) == 3
    assert segments[0].text == words("x", 10) + " " + words("y", 45)
    assert segments[0].start_time == 0
    assert segments[0].end_time == 602
    assert segments[1].text == words("z", 60)
    assert segments[2].text == words("w", 5)


def test_every_fragment_over_threshold_becomes_its_own_coarse_segment():
    fragments = [fragment(i * 301, (i + 1) * 301, words("t", 50)) for i in range(5)]
    segments = segment_transcript({"segments": fragments})
    assert len(segments) == 5
    assert [s.segment_index for s in segments] == list(range(5))
    for segment in segments:
        assert segment.end_time >= segment.start_time


def test_word_count_counts_empty_tokens():
    assert word_count("a  b") == 3
    assert word_count("") == 1


def test_minimum_length_pass_reindexes_from_zero():
    result = ensure_minimum_length(
        [
            SegmentRecord(0, 10, words("a", 50), 7),
            SegmentRecord(10, 20, words("b", 50), 9),
        ]
    )
    assert [s.segment_index for s in result] == [0, 1]


def test_out_of_order_end_never_precedes_start():
    segments = segment_transcript({"segments": [fragment(50, 10, "late"), fragment(60, 40, "later")]})
    for segment in segments:
        assert segment.end_time >= segment.start_time


@pytest.mark.parametrize(
    "transcript",
    [
        {},
        {"segments": "nope"},
        [],
        None,
        {"segments": [fragment("abc", 3, "hi")]},
        {"segments": [fragment(0, [1], "hi")]},
    ],
)
def test_malformed_transcript_is_rejected(transcript):
    with pytest.raises(ValidationError):
        segment_transcript(transcript)
