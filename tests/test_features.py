"""
Test Feature Extraction

Keywords, emotion, pace, topic completion and the segment record.
"""

import pytest

from core.errors import StorageError
from modules.features.extractor import (
    FeatureExtractor,
    TopicTracker,
    extract_keywords,
    pace_band,
    speaking_pace,
    tag_emotion
)
from modules.features.models import KeywordSet, TranscriptSegment
from modules.intent.base import Utterance


class TestKeywords:

    def test_fox_sentence(self):
        """Test short words and stopwords are dropped, order is first occurrence"""
        keywords = extract_keywords("The quick brown fox jumps over the lazy dog")
        assert keywords == ["quick", "brown", "jumps", "lazy"]

    def test_frequency_then_first_occurrence(self):
        text = "Gradient descent updates weights. Weights follow the gradient, weights converge."
        assert extract_keywords(text, limit=3) == ["weights", "gradient", "descent"]

    def test_digits_and_punctuation(self):
        assert extract_keywords("In 2024, revenue grew!!! Revenue... 12345") == ["revenue", "grew"]

    def test_limit(self):
        text = "alpha bravo charlie delta echoes foxtrot golfer"
        assert len(extract_keywords(text, limit=5)) == 5

    def test_deterministic(self):
        text = "Neural networks learn representations; networks generalise"
        assert extract_keywords(text) == extract_keywords(text)


class TestEmotionAndPace:

    @pytest.mark.parametrize("text,emotion", [
        ("This is a great and amazing result", "positive"),
        ("That was a terrible problem", "negative"),
        ("Good results but a bad week", "neutral"),
        ("The model has four layers", "neutral"),
    ])
    def test_tag_emotion(self, text, emotion):
        assert tag_emotion(text) == emotion

    def test_pace_uses_window(self):
        # 25 words in a 10 second window -> 150 wpm
        assert speaking_pace(" ".join(["word"] * 25)) == 150

    def test_pace_uses_elapsed_time(self):
        assert speaking_pace(" ".join(["word"] * 10), elapsed_seconds=6.0) == 100

    @pytest.mark.parametrize("wpm,band", [(90, "slow"), (120, "optimal"), (180, "optimal"), (200, "fast")])
    def test_pace_band(self, wpm, band):
        assert pace_band(wpm) == band


class TestTopicTracker:

    def test_completion_accumulates_and_caps(self):
        tracker = TopicTracker(target_length=100)

        assert tracker.update(1, "x" * 40) == 40.0
        assert tracker.update(1, "x" * 40) == 80.0
        assert tracker.update(1, "x" * 40) == 100.0

    def test_reset_on_slide_change(self):
        tracker = TopicTracker(target_length=100)
        tracker.update(1, "x" * 90)

        assert tracker.update(2, "x" * 10) == 10.0

    def test_invalid_target(self):
        with pytest.raises(ValueError):
            TopicTracker(target_length=0)


class TestFeatureExtractor:

    @pytest.fixture
    def extractor(self):
        return FeatureExtractor({'topic_target_length': 500})

    def test_extract_segment(self, extractor):
        utterance = Utterance(
            text="  Excellent neural networks learn excellent representations  ",
            confidence=0.85,
            timestamp=1000.0,
            slide_at_time=3
        )
        segment = extractor.extract(utterance, "session_1")

        assert segment.session_id == "session_1"
        assert segment.slide_number == 3
        assert segment.text == "Excellent neural networks learn excellent representations"
        assert segment.keywords[0] == "excellent"
        assert segment.emotion == "positive"
        assert segment.word_count == 6
        assert segment.pace_wpm == 36
        assert segment.topic_completion == pytest.approx(len(segment.text) / 500 * 100)
        assert extractor.session_keywords.count("excellent") == 1

    def test_pluggable_steps(self):
        extractor = FeatureExtractor(
            keyword_fn=lambda text: ["custom"],
            emotion_fn=lambda text: "negative",
            pace_fn=lambda text: 999
        )
        segment = extractor.extract(Utterance(text="anything at all"), "s")

        assert segment.keywords == ("custom",)
        assert segment.emotion == "negative"
        assert segment.pace_wpm == 999

    def test_slide_changed_resets_topic(self, extractor):
        extractor.extract(Utterance(text="x" * 300, slide_at_time=1), "s")
        extractor.slide_changed(2)
        segment = extractor.extract(Utterance(text="y" * 50, slide_at_time=2), "s")

        assert segment.topic_completion == pytest.approx(10.0)


class TestModels:

    def test_keyword_set_ranking(self):
        keywords = KeywordSet(["beta", "alpha", "beta", "gamma"])

        assert keywords.ranked() == ["beta", "alpha", "gamma"]
        assert keywords.ranked(1) == ["beta"]
        assert len(keywords) == 3
        assert "alpha" in keywords
        assert "delta" not in keywords

    def test_segment_dict_round_trip(self):
        segment = TranscriptSegment(
            session_id="s", slide_number=2, text="hello world", timestamp=10.0,
            confidence=0.9, keywords=("hello", "world"), word_count=2
        )
        assert TranscriptSegment.from_dict(segment.to_dict()) == segment

    def test_validate_rejects_bad_segment(self):
        segment = TranscriptSegment(
            session_id="s", slide_number=0, text=" ", timestamp=10.0, confidence=1.5
        )
        with pytest.raises(StorageError) as exc_info:
            segment.validate()

        message = exc_info.value.message
        assert "slide_number" in message
        assert "text is empty" in message
        assert "confidence" in message
