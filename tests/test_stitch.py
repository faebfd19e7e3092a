"""Tests for chunkscribe.stitch.merge module."""

from __future__ import annotations

from typing import Any

import pytest
from fakes import ResplitTranscriber, continuous_items

from chunkscribe.exceptions import StitchInvariantViolation
from chunkscribe.formats.structured import parse_structured
from chunkscribe.formats.vtt import parse_vtt
from chunkscribe.segment.planner import SegmentDescriptor, plan_segments
from chunkscribe.stitch.merge import (
    SegmentResult,
    check_timeline,
    stitch,
    stitch_cue_tracks,
    stitch_structured,
)


def cue(start: float, end: float, text: str) -> dict[str, Any]:
    return {"start": start, "end": end, "text": text}


def track(*cues: dict[str, Any]) -> dict[str, Any]:
    return {"header": "WEBVTT", "cues": list(cues)}


def vtt_result(index: int, start: float, length: float, *cues: dict[str, Any]) -> SegmentResult:
    return SegmentResult(
        descriptor=SegmentDescriptor(index=index, start=start, length=length),
        kind="vtt",
        payload=track(*cues),
    )


def resplit(
    items: list[dict[str, Any]], total: float, length: float, overlap: float, kind: str
) -> list[SegmentResult]:
    fake = ResplitTranscriber(items, output_format=kind)
    results = []
    for segment in plan_segments(total, length, overlap):
        local = fake.window_items(segment.start, segment.length)
        if kind == "vtt":
            payload = track(*local)
        else:
            payload = {
                "text": " ".join(i["text"] for i in local),
                "language": "english",
                "duration": segment.length,
                "words": [{"word": i["text"], "start": i["start"], "end": i["end"]} for i in local],
                "segments": [{"id": n, **i} for n, i in enumerate(local)],
            }
        results.append(SegmentResult(descriptor=segment, kind=kind, payload=payload))
    return results


def assert_monotonic(items: list[dict[str, Any]], epsilon: float = 1e-6) -> None:
    for prev, cur in zip(items, items[1:]):
        assert prev["start"] <= cur["start"]
        assert prev["end"] <= cur["start"] + epsilon


class TestSingleSegment:
    def test_cue_track_is_unchanged(self, sample_vtt: str) -> None:
        payload = parse_vtt(sample_vtt)
        result = SegmentResult(SegmentDescriptor(0, 0.0, 12.0), "vtt", payload)

        assert stitch([result], overlap=20) == payload

    def test_structured_is_unchanged(self, sample_verbose_json: dict) -> None:
        payload = parse_structured(sample_verbose_json)
        result = SegmentResult(SegmentDescriptor(0, 0.0, 6.5), "json", payload)

        assert stitch([result], overlap=20) == payload

    def test_first_segment_items_inside_overlap_kept(self) -> None:
        result = vtt_result(0, 0, 600, cue(0, 5, "a"), cue(5, 10, "b"))
        assert len(stitch([result], overlap=20)["cues"]) == 2


class TestOverlapDeduplication:
    def test_items_before_threshold_dropped(self) -> None:
        first = vtt_result(0, 0, 600, *[cue(t, t + 100, f"first-{t}") for t in range(0, 600, 100)])
        second = vtt_result(
            1,
            580,
            600,
            cue(0, 5, "dup-a"),
            cue(5, 10, "dup-b"),
            cue(10, 19.9, "dup-c"),
            cue(20, 120, "second-0"),
            cue(120, 220, "second-1"),
        )

        stitched = stitch([first, second], overlap=20)
        texts = [c["text"] for c in stitched["cues"]]

        assert not any(t.startswith("dup") for t in texts)
        assert texts[-2:] == ["second-0", "second-1"]
        assert len(texts) == 8
        assert stitched["cues"][-2]["start"] == 600
        assert stitched["cues"][-1]["end"] == 800

    def test_threshold_is_inclusive(self) -> None:
        first = vtt_result(0, 0, 600, cue(590, 600, "tail"))
        second = vtt_result(1, 580, 600, cue(20, 30, "at-cut"))

        stitched = stitch([first, second], overlap=20)

        assert [c["text"] for c in stitched["cues"]] == ["tail", "at-cut"]

    def test_header_taken_from_first_segment(self) -> None:
        first = SegmentResult(SegmentDescriptor(0, 0, 600), "vtt", {"header": "WEBVTT - x", "cues": []})
        second = vtt_result(1, 580, 600, cue(30, 40, "hi"))

        assert stitch([first, second], overlap=20)["header"] == "WEBVTT - x"

    def test_empty_middle_segment(self) -> None:
        results = [
            vtt_result(0, 0, 600, cue(0, 10, "a")),
            vtt_result(1, 580, 600),
            vtt_result(2, 1160, 340, cue(40, 50, "c")),
        ]

        stitched = stitch(results, overlap=20)

        assert [(c["start"], c["text"]) for c in stitched["cues"]] == [(0, "a"), (1200, "c")]


class TestResplitRoundTrip:
    @pytest.mark.parametrize("step,length", [(3.7, 3.2), (4.0, 4.0), (11.25, 2.5)])
    def test_cue_track_round_trip(self, step: float, length: float) -> None:
        items = continuous_items(1500, step, length)

        stitched = stitch(resplit(items, 1500, 600, 20, "vtt"), overlap=20)

        assert [c["text"] for c in stitched["cues"]] == [i["text"] for i in items]
        for got, want in zip(stitched["cues"], items):
            assert got["start"] == pytest.approx(want["start"], abs=1e-6)
            assert got["end"] == pytest.approx(want["end"], abs=1e-6)
        assert_monotonic(stitched["cues"])

    def test_structured_round_trip(self) -> None:
        items = continuous_items(2000, 2.9, 2.5)

        stitched = stitch(resplit(items, 2000, 600, 20, "json"), overlap=20)

        assert [w["word"] for w in stitched["words"]] == [i["text"] for i in items]
        assert [s["text"] for s in stitched["segments"]] == [i["text"] for i in items]
        assert [s["id"] for s in stitched["segments"]] == list(range(len(items)))
        assert stitched["text"] == " ".join(i["text"] for i in items)
        assert stitched["duration"] == pytest.approx(2000)
        assert stitched["language"] == "english"
        for got, want in zip(stitched["words"], items):
            assert got["start"] == pytest.approx(want["start"], abs=1e-6)
        assert_monotonic(stitched["words"])
        assert_monotonic(stitched["segments"])

    def test_hundred_second_cues_over_three_segments(self) -> None:
        items = continuous_items(1500, 100)
        results = resplit(items, 1500, 600, 20, "vtt")

        stitched = stitch(results, overlap=20)
        cues = stitched["cues"]

        assert [(r.descriptor.start, r.descriptor.length) for r in results] == [
            (0, 600),
            (580, 600),
            (1160, 340),
        ]
        assert len(cues) == 15
        assert cues[0]["start"] == 0
        assert cues[-1]["end"] == 1500
        assert len({c["text"] for c in cues}) == 15


class TestMeasuredStrategy:
    def test_offset_follows_measured_content_end(self) -> None:
        results = [
            vtt_result(0, 0, 600, cue(0, 100, "a"), cue(500, 590, "b")),
            vtt_result(1, 580, 600, cue(0, 10, "dup"), cue(25, 100, "c"), cue(100, 560, "d")),
            vtt_result(2, 1160, 340, cue(5, 15, "dup2"), cue(30, 40, "e")),
        ]

        stitched = stitch(results, overlap=20, strategy="measured")
        got = [(c["text"], c["start"], c["end"]) for c in stitched["cues"]]

        # Offsets: 0, then 590, then 590 + 560.
        assert got == [
            ("a", 0, 100),
            ("b", 500, 590),
            ("c", 615, 690),
            ("d", 690, 1150),
            ("e", 1180, 1190),
        ]

    def test_segment_with_only_discarded_items_still_advances(self) -> None:
        results = [
            vtt_result(0, 0, 600, cue(0, 600, "a")),
            vtt_result(1, 580, 600, cue(0, 10, "dup")),
            vtt_result(2, 1160, 340, cue(30, 40, "c")),
        ]

        stitched = stitch(results, overlap=20, strategy="measured")

        assert stitched["cues"][-1]["start"] == 640

    def test_empty_segment_advances_by_length(self) -> None:
        results = [
            vtt_result(0, 0, 600),
            vtt_result(1, 580, 600, cue(30, 40, "b")),
        ]

        stitched = stitch(results, overlap=20, strategy="measured")

        assert stitched["cues"][0]["start"] == 630

    def test_unknown_strategy_raises(self) -> None:
        with pytest.raises(ValueError):
            stitch([vtt_result(0, 0, 10)], overlap=1, strategy="nominal")


class TestStructured:
    def test_text_rebuilt_from_kept_segments(self) -> None:
        first = SegmentResult(
            SegmentDescriptor(0, 0, 600),
            "json",
            {
                "text": "hello there",
                "language": "english",
                "duration": 600,
                "words": [{"word": "hello", "start": 585, "end": 590}, {"word": "there", "start": 592, "end": 598}],
                "segments": [{"id": 0, "start": 585, "end": 598, "text": "hello there"}],
            },
        )
        second = SegmentResult(
            SegmentDescriptor(1, 580, 600),
            "json",
            {
                "text": "hello there general kenobi",
                "language": "english",
                "duration": 600,
                "words": [
                    {"word": "hello", "start": 5, "end": 10},
                    {"word": "there", "start": 12, "end": 18},
                    {"word": "general", "start": 21, "end": 22},
                    {"word": "kenobi", "start": 22, "end": 23},
                ],
                "segments": [
                    {"id": 0, "start": 5, "end": 18, "text": "hello there"},
                    {"id": 1, "start": 21, "end": 23, "text": "general kenobi"},
                ],
            },
        )

        stitched = stitch_structured([first, second], overlap=20)

        assert stitched["text"] == "hello there general kenobi"
        assert [w["word"] for w in stitched["words"]] == ["hello", "there", "general", "kenobi"]
        assert stitched["words"][2] == {"word": "general", "start": 601, "end": 602}
        assert [s["id"] for s in stitched["segments"]] == [0, 1]
        assert stitched["duration"] == 1180

    def test_text_from_words_when_no_segments(self) -> None:
        result = SegmentResult(
            SegmentDescriptor(0, 0, 10),
            "json",
            {"text": "", "words": [{"word": " hi", "start": 0, "end": 1}], "segments": []},
        )
        assert stitch([result], overlap=1)["text"] == "hi"


class TestValidation:
    def test_overlapping_items_raise(self) -> None:
        first = vtt_result(0, 0, 600, cue(0, 100, "a"), cue(500, 650, "too long"))
        second = vtt_result(1, 580, 600, cue(20, 30, "b"))

        with pytest.raises(StitchInvariantViolation):
            stitch_cue_tracks([first, second], overlap=20)

    def test_jitter_within_tolerance_accepted(self) -> None:
        first = vtt_result(0, 0, 600, cue(590, 600.3, "a"))
        second = vtt_result(1, 580, 600, cue(20, 30, "b"))

        assert len(stitch([first, second], overlap=20, tolerance=0.5)["cues"]) == 2

    def test_out_of_order_results_raise(self) -> None:
        with pytest.raises(StitchInvariantViolation):
            stitch([vtt_result(1, 580, 600), vtt_result(0, 0, 600)], overlap=20)

    def test_mixed_kinds_raise(self, sample_verbose_json: dict) -> None:
        json_result = SegmentResult(SegmentDescriptor(1, 580, 600), "json", parse_structured(sample_verbose_json))
        with pytest.raises(ValueError):
            stitch([vtt_result(0, 0, 600), json_result], overlap=20)

    def test_empty_input_raises(self) -> None:
        with pytest.raises(ValueError):
            stitch([], overlap=20)

    def test_check_timeline_detects_backwards_start(self) -> None:
        with pytest.raises(StitchInvariantViolation):
            check_timeline([cue(10, 11, "a"), cue(5, 6, "b")], "cue")

    def test_check_timeline_allows_equal_starts(self) -> None:
        check_timeline([cue(10, 10, "a"), cue(10, 11, "b")], "word")


class TestSegmentResult:
    def test_recognized_text_vtt(self, sample_vtt: str) -> None:
        result = SegmentResult(SegmentDescriptor(0, 0, 12), "vtt", parse_vtt(sample_vtt))
        assert result.recognized_text.startswith("Welcome back to the course. Today")

    def test_recognized_text_json(self, sample_verbose_json: dict) -> None:
        result = SegmentResult(SegmentDescriptor(0, 0, 7), "json", parse_structured(sample_verbose_json))
        assert result.recognized_text == "Welcome back. Today we look at Nuxt."

    def test_content_end(self, sample_verbose_json: dict) -> None:
        result = SegmentResult(SegmentDescriptor(0, 0, 7), "json", parse_structured(sample_verbose_json))
        assert result.content_end == 3.6
