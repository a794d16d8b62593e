import unittest

from mmi_worker.models import SCORE_CATEGORIES, TranscriptSegment
from mmi_worker.pipeline import quality_gate
from mmi_worker.pipeline.quality_gate import evaluate, not_usable_analysis, NOT_USABLE, USABLE


def words(n: int) -> str:
    return " ".join(["consent"] * n)


class TestQualityGate(unittest.TestCase):
    """Speech-quality classification"""

    def test_empty_transcript_is_not_usable(self):
        verdict = evaluate("", [])
        self.assertEqual(verdict.verdict, NOT_USABLE)
        self.assertEqual(verdict.word_count, 0)
        self.assertEqual(verdict.total_duration, 0.0)

    def test_few_words_not_usable_regardless_of_duration(self):
        for duration in (0.0, 5.0, 30.0, 600.0):
            segments = [TranscriptSegment(0.0, duration, words(14))]
            verdict = evaluate(words(14), segments)
            self.assertFalse(verdict.usable, f"duration={duration}")
            self.assertEqual(verdict.word_count, 14)

    def test_short_character_length_not_usable(self):
        transcript = " ".join(["a"] * 20)  # 20 words, 39 characters
        verdict = evaluate(transcript, [TranscriptSegment(0.0, 8.0, transcript)])
        self.assertEqual(verdict.verdict, NOT_USABLE)

    def test_slow_speech_rate_not_usable_even_with_enough_words(self):
        # 20 words over 100 seconds is 0.2 words per second
        transcript = words(20)
        segments = [TranscriptSegment(0.0, 50.0, words(10)), TranscriptSegment(50.0, 100.0, words(10))]
        verdict = evaluate(transcript, segments)
        self.assertEqual(verdict.verdict, NOT_USABLE)
        self.assertEqual(verdict.total_duration, 100.0)

    def test_rate_check_ignored_for_short_recordings(self):
        transcript = words(16)
        verdict = evaluate(transcript, [TranscriptSegment(0.0, 10.0, transcript)])
        self.assertEqual(verdict.verdict, USABLE)

    def test_normal_answer_is_usable(self):
        transcript = words(200)
        segments = [TranscriptSegment(0.0, 90.0, words(100)), TranscriptSegment(90.0, 180.0, words(100))]
        verdict = evaluate(transcript, segments)
        self.assertTrue(verdict.usable)
        self.assertEqual(verdict.word_count, 200)
        self.assertEqual(verdict.total_duration, 180.0)

    def test_duration_is_end_of_last_segment(self):
        segments = [TranscriptSegment(0.0, 4.0, "a"), TranscriptSegment(4.0, 12.5, "b")]
        self.assertEqual(quality_gate.total_duration(segments), 12.5)


class TestNotUsablePayload(unittest.TestCase):

    def test_canned_payload(self):
        analysis = not_usable_analysis("")
        self.assertEqual(set(analysis.scores), set(SCORE_CATEGORIES))
        self.assertTrue(all(score == 0 for score in analysis.scores.values()))
        self.assertIsNone(analysis.metrics["eyeContactPct"])
        self.assertEqual(analysis.metrics["wpm"], 0)
        self.assertIn("No speech detected", analysis.metrics["headPoseNotes"])
        self.assertEqual(len(analysis.feedback), 1)
        self.assertEqual(analysis.feedback[0]["ts"], "00:00")
        self.assertIn("clear audio", analysis.feedback[0]["note"])
        self.assertEqual(analysis.recommended_articles, [])

    def test_payload_keeps_transcript(self):
        self.assertEqual(not_usable_analysis("um hello").transcript, "um hello")


if __name__ == '__main__':
    unittest.main()
