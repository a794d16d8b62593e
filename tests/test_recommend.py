import unittest

from mmi_worker.models import Article, Station, SCORE_CATEGORIES
from mmi_worker.pipeline.recommend import (
    CATEGORY_KEYWORDS, matches_category, recommend_articles, score_article, weak_areas
)


def scores_with(**overrides) -> dict:
    scores = {category: 90 for category in SCORE_CATEGORIES}
    scores.update(overrides)
    return scores


def unrelated(article_id: str) -> Article:
    return Article(id=article_id, title="Hospital parking policy", category="Misc", tags=["logistics"])


class TestWeakAreas(unittest.TestCase):

    def test_sorted_weakest_first_and_excludes_overall(self):
        areas = weak_areas(scores_with(Structure=40, Empathy=60, Ethics=74, Overall=10))
        self.assertEqual(areas, [("Structure", 40), ("Empathy", 60), ("Ethics", 74)])

    def test_threshold_is_exclusive(self):
        self.assertEqual(weak_areas(scores_with(Teamwork=75)), [])


class TestKeywordTable(unittest.TestCase):

    def test_every_rubric_category_has_keywords(self):
        for category in SCORE_CATEGORIES:
            if category != "Overall":
                self.assertTrue(CATEGORY_KEYWORDS[category], category)

    def test_match_on_tag_title_and_category(self):
        by_tag = Article(id="a", title="Answering well", category="Skills", tags=["STAR"])
        by_title = Article(id="b", title="Confidentiality in practice", category="Law", tags=[])
        by_category = Article(id="c", title="Working together", category="Teamwork", tags=[])
        self.assertTrue(matches_category(by_tag, "Structure"))
        self.assertTrue(matches_category(by_title, "Ethics"))
        self.assertTrue(matches_category(by_category, "Teamwork"))
        self.assertFalse(matches_category(unrelated("d"), "Ethics"))


class TestScoring(unittest.TestCase):

    def test_points_decay_by_rank(self):
        areas = [("Structure", 40), ("Empathy", 50), ("Ethics", 60), ("Teamwork", 70)]
        self.assertEqual(score_article(Article(id="1", tags=["star"]), areas), 15)
        self.assertEqual(score_article(Article(id="2", tags=["empathy"]), areas), 12)
        self.assertEqual(score_article(Article(id="3", tags=["consent"]), areas), 9)
        # Fourth weakest area earns nothing
        self.assertEqual(score_article(Article(id="4", tags=["teamwork"]), areas), 0)

    def test_station_bonuses_are_independent(self):
        article = Article(id="x", title="Reading charts", tags=["patient communication", "statistics"])
        role_play = Station(id="s1", role_play=True)
        graph = Station(id="s2", graph_data=True)
        both = Station(id="s3", role_play=True, graph_data=True)
        self.assertEqual(score_article(article, [], role_play), 8)
        self.assertEqual(score_article(article, [], graph), 8)
        self.assertEqual(score_article(article, [], both), 16)
        self.assertEqual(score_article(article, [], Station(id="s4")), 0)
        self.assertEqual(score_article(article, [], None), 0)


class TestRecommendArticles(unittest.TestCase):

    def test_star_article_ranks_above_unrelated(self):
        catalog = [unrelated("u1"), Article(id="star", title="Answer frameworks", tags=["STAR"]), unrelated("u2")]
        result = recommend_articles(scores_with(Structure=40, Empathy=60), catalog)
        self.assertEqual(result[0], "star")
        self.assertEqual(result, ["star", "u1", "u2"])

    def test_ranked_by_total_score(self):
        catalog = [
            Article(id="empathy", tags=["empathy"]),
            Article(id="both", tags=["star", "empathy"]),
            Article(id="structure", tags=["structure"]),
            Article(id="ethics", tags=["ethics"]),
        ]
        result = recommend_articles(scores_with(Structure=40, Empathy=60), catalog)
        self.assertEqual(result, ["both", "structure", "empathy"])

    def test_ties_keep_catalog_order(self):
        catalog = [Article(id=str(i), tags=["star"]) for i in range(5)]
        self.assertEqual(recommend_articles(scores_with(Structure=10), catalog), ["0", "1", "2"])

    def test_pads_with_catalog_when_no_weak_areas(self):
        catalog = [unrelated(str(i)) for i in range(5)]
        self.assertEqual(recommend_articles(scores_with(), catalog), ["0", "1", "2"])

    def test_station_bonus_without_weak_areas(self):
        catalog = [unrelated("u1"), Article(id="data", tags=["data interpretation"])]
        station = Station(id="s", graph_data=True)
        self.assertEqual(recommend_articles(scores_with(), catalog, station), ["data", "u1"])

    def test_never_more_than_three_and_no_duplicates(self):
        catalog = [Article(id=str(i % 4), tags=["star", "empathy"]) for i in range(12)]
        for scores in (scores_with(), scores_with(Structure=5, Empathy=6, Ethics=7)):
            result = recommend_articles(scores, catalog)
            self.assertLessEqual(len(result), 3)
            self.assertEqual(len(result), len(set(result)))
            self.assertEqual(len(result), 3)

    def test_fewer_than_three_only_for_small_catalogs(self):
        self.assertEqual(recommend_articles(scores_with(Structure=10), []), [])
        self.assertEqual(recommend_articles(scores_with(Structure=10), [unrelated("a")]), ["a"])
        self.assertEqual(
            recommend_articles(scores_with(Structure=10), [unrelated("a"), Article(id="b", tags=["star"])]),
            ["b", "a"]
        )


if __name__ == '__main__':
    unittest.main()
