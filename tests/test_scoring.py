import json
import unittest

from mmi_worker.models import SCORE_CATEGORIES
from mmi_worker.pipeline.scoring import (
    apply_duration_cap, normalize_scores, post_process, DURATION_CAP_NOTE
)


def full_scores(value: int) -> dict:
    return {category: value for category in SCORE_CATEGORIES}


class TestNormalizeScores(unittest.TestCase):

    def test_missing_categories_are_zero_filled(self):
        scores = normalize_scores({"Structure": 55})
        self.assertEqual(set(scores), set(SCORE_CATEGORIES))
        self.assertEqual(scores["Structure"], 55)
        self.assertEqual(scores["Teamwork"], 0)

    def test_values_are_coerced_and_clamped(self):
        scores = normalize_scores({"Structure": "62", "Ethics": 71.6, "Empathy": 140, "Teamwork": -5,
                                   "Motivation": "n/a"})
        self.assertEqual(scores["Structure"], 62)
        self.assertEqual(scores["Ethics"], 72)
        self.assertEqual(scores["Empathy"], 100)
        self.assertEqual(scores["Teamwork"], 0)
        self.assertEqual(scores["Motivation"], 0)

    def test_unknown_categories_are_dropped(self):
        self.assertNotIn("Charisma", normalize_scores({"Charisma": 90}))

    def test_non_finite_scores_are_zeroed(self):
        scores = normalize_scores({"Structure": float("inf"), "Ethics": float("-inf"), "Empathy": float("nan"),
                                   "Teamwork": json.loads("1e400")})
        self.assertEqual(scores["Structure"], 0)
        self.assertEqual(scores["Ethics"], 0)
        self.assertEqual(scores["Empathy"], 0)
        self.assertEqual(scores["Teamwork"], 0)


class TestDurationCap(unittest.TestCase):

    def test_short_response_caps_overall_and_discloses(self):
        scores = full_scores(60)
        scores["Overall"] = 80
        capped, feedback = apply_duration_cap(scores, [{"ts": "00:12", "note": "Good opening"}], 90.0)
        self.assertEqual(capped["Overall"], 30)
        self.assertIn("duration", feedback[0]["note"].lower())
        self.assertEqual(feedback[0]["ts"], "00:00")
        self.assertEqual(feedback[1]["note"], "Good opening")

    def test_every_category_capped_for_any_short_duration(self):
        for duration in (0.0, 30.0, 119.9, 120.0):
            for value in (0, 25, 30, 31, 75, 100):
                capped, _ = apply_duration_cap(full_scores(value), [], duration)
                self.assertTrue(all(score <= 30 for score in capped.values()), (duration, value))
                self.assertEqual(capped["Structure"], min(value, 30))

    def test_reapplying_cap_is_a_no_op(self):
        for duration in (15.0, 60.0, 120.0):
            once = apply_duration_cap(full_scores(90), [{"ts": "01:00", "note": "Clear"}], duration)
            twice = apply_duration_cap(once[0], once[1], duration)
            self.assertEqual(once, twice)
            notes = [item["note"] for item in twice[1]]
            self.assertEqual(notes.count(DURATION_CAP_NOTE), 1)

    def test_existing_duration_note_suppresses_disclosure(self):
        for note in ("Answer LENGTH was too short", "Watch your time", "Short duration"):
            feedback = [{"ts": "00:30", "note": note}]
            _, result = apply_duration_cap(full_scores(50), feedback, 60.0)
            self.assertEqual(result, feedback)

    def test_long_response_untouched(self):
        scores = full_scores(88)
        feedback = [{"ts": "02:10", "note": "Strong ethics"}]
        capped, result = apply_duration_cap(scores, feedback, 121.0)
        self.assertEqual(capped, scores)
        self.assertEqual(result, feedback)

    def test_inputs_not_mutated(self):
        scores = full_scores(70)
        feedback = []
        apply_duration_cap(scores, feedback, 45.0)
        self.assertEqual(scores["Overall"], 70)
        self.assertEqual(feedback, [])

    def test_post_process_normalizes_then_caps(self):
        scores, feedback = post_process({"Overall": "95"}, [], 100.0)
        self.assertEqual(scores["Overall"], 30)
        self.assertEqual(scores["Empathy"], 0)
        self.assertEqual(len(feedback), 1)


if __name__ == '__main__':
    unittest.main()
