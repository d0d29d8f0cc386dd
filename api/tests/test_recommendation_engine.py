"""
Tests for the RecommendationEngine and its strategies.
"""
import pytest

from engines.catalog import IndexBuilder, Product, RecordStore
from engines.recommendation import (
    RecommendationEngine,
    RecommendationType,
    STRATEGIES,
)


def skus(result):
    return [product.sku for product in result.products]


def engine_for(products, include_inactive=False):
    index = IndexBuilder(RecordStore.from_records(products)).build()
    return RecommendationEngine(index, include_inactive=include_inactive)


class TestSimilarProducts:

    @pytest.mark.unit
    def test_similar_ranked_by_shared_keywords(self, recommendation_engine):
        result = recommendation_engine.get_similar_products("ANCHW200", 10)

        assert result.type == RecommendationType.SIMILAR
        assert skus(result) == ["ANCHW150", "SARDN120"]
        assert result.source_sku == "ANCHW200"
        assert result.reason

    @pytest.mark.unit
    def test_similar_scores(self, recommendation_engine):
        result = recommendation_engine.get_similar_products("ANCHW200", 10)

        by_sku = {score.sku: score for score in result.scores}
        assert by_sku["ANCHW150"].shared_keywords == 2
        assert by_sku["ANCHW150"].attribute_match == 2
        assert by_sku["SARDN120"].shared_keywords == 1
        assert by_sku["SARDN120"].attribute_match == 1
        assert by_sku["ANCHW150"].relevance == pytest.approx(0.7333, abs=1e-4)
        assert result.score == pytest.approx((0.7333 + 0.3667) / 2, abs=1e-3)
        assert 0.0 <= result.score <= 1.0

    @pytest.mark.unit
    def test_similar_never_contains_source(self, recommendation_engine, store):
        for sku in store.products:
            result = recommendation_engine.get_similar_products(sku, 50)
            assert sku not in skus(result)

    @pytest.mark.unit
    def test_attribute_match_breaks_keyword_ties(self):
        engine = engine_for([
            Product(sku="SRC", category="Cheese", brand="Acme", keywords=("soft",)),
            Product(sku="A1", category="Cheese", brand="Other", keywords=("soft",)),
            Product(sku="B1", category="Cheese", brand="Acme", keywords=("soft",)),
            Product(sku="C1", category="Cheese", brand="Acme", keywords=("soft",)),
        ])

        assert skus(engine.get_similar_products("SRC", 10)) == ["B1", "C1", "A1"]

    @pytest.mark.unit
    def test_empty_category_and_brand_do_not_match(self):
        engine = engine_for([
            Product(sku="SRC", keywords=("x",)),
            Product(sku="OTHER", keywords=("x",)),
        ])
        assert engine.get_similar_products("SRC", 10).products == []

    @pytest.mark.unit
    def test_unknown_sku_is_empty_not_an_error(self, recommendation_engine):
        result = recommendation_engine.get_similar_products("nonexistent-sku", 5)

        assert result.products == []
        assert result.score == 0.0
        assert result.reason == "Product not found"

    @pytest.mark.unit
    def test_limit(self, recommendation_engine):
        assert len(recommendation_engine.get_similar_products("ANCHW200", 1).products) == 1
        assert recommendation_engine.get_similar_products("ANCHW200", 0).products == []


class TestTrendingProducts:

    @pytest.mark.unit
    def test_trending_by_orders(self):
        engine = engine_for([
            Product(sku="B", order_last_month=10),
            Product(sku="A", order_last_month=500),
        ])

        result = engine.get_trending_products(None, 2)

        assert skus(result) == ["A", "B"]
        assert result.type == RecommendationType.TRENDING
        assert result.scores[0].relevance == 1.0

    @pytest.mark.unit
    def test_products_without_orders_rank_last(self, recommendation_engine):
        result = recommendation_engine.get_trending_products(limit=10)
        assert skus(result) == ["ANCHW150", "OLIVOIL1", "ANCHW200", "BREAD001", "CAPERS01", "SARDN120"]

    @pytest.mark.unit
    def test_category_filter(self, recommendation_engine):
        assert skus(recommendation_engine.get_trending_products(["Pantry"], 10)) == ["OLIVOIL1", "CAPERS01"]
        assert skus(recommendation_engine.get_trending_products("Pantry", 10)) == ["OLIVOIL1", "CAPERS01"]

    @pytest.mark.unit
    def test_category_filter_matches_web_category(self, recommendation_engine):
        result = recommendation_engine.get_trending_products(["Fish"], 10)
        assert skus(result) == ["ANCHW150", "ANCHW200", "SARDN120"]
        assert "Fish" in result.reason

    @pytest.mark.unit
    def test_inactive_excluded_by_default(self, recommendation_engine):
        # SALMN500 has the most orders but is inactive
        assert "SALMN500" not in skus(recommendation_engine.get_trending_products(limit=50))
        assert "TUNA0001" not in skus(recommendation_engine.get_trending_products(limit=50))

    @pytest.mark.unit
    def test_inactive_policy_is_configurable(self, index):
        engine = RecommendationEngine(index, include_inactive=True)
        result = engine.get_trending_products(limit=50)

        assert skus(result)[0] == "SALMN500"
        assert "TUNA0001" not in skus(result)


class TestComplementaryProducts:

    @pytest.mark.unit
    def test_complementary_from_other_categories(self, recommendation_engine):
        result = recommendation_engine.get_complementary_products("ANCHW200", 10)

        assert skus(result) == ["CAPERS01"]
        assert result.type == RecommendationType.COMPLEMENTARY
        assert result.score == pytest.approx(0.3333, abs=1e-4)

    @pytest.mark.unit
    def test_ranked_by_shared_keywords_then_sku(self):
        engine = engine_for([
            Product(sku="SRC", category="Cheese", keywords=("wine", "cracker", "fig")),
            Product(sku="Z9", category="Wine", keywords=("wine",)),
            Product(sku="M5", category="Bakery", keywords=("cracker", "fig")),
            Product(sku="A1", category="Fruit", keywords=("fig",)),
            Product(sku="X1", category="Cheese", keywords=("wine", "cracker", "fig")),
        ])

        assert skus(engine.get_complementary_products("SRC", 10)) == ["M5", "A1", "Z9"]

    @pytest.mark.unit
    def test_unknown_sku(self, recommendation_engine):
        result = recommendation_engine.get_complementary_products("missing", 10)
        assert result.products == []
        assert result.score == 0.0


class TestRecommendationBundle:

    @pytest.mark.unit
    def test_bundle_with_sku(self, recommendation_engine):
        bundle = recommendation_engine.get_recommendations("ANCHW200", limit=5)
        kinds = [result.type for result in bundle.results]
        assert kinds == [RecommendationType.SIMILAR, RecommendationType.COMPLEMENTARY, RecommendationType.TRENDING]

    @pytest.mark.unit
    def test_bundle_without_sku_is_trending_only(self, recommendation_engine):
        bundle = recommendation_engine.get_recommendations(limit=5)
        assert [result.type for result in bundle.results] == [RecommendationType.TRENDING]

    @pytest.mark.unit
    def test_bundle_drops_empty_results(self, recommendation_engine):
        bundle = recommendation_engine.get_recommendations("nonexistent-sku", limit=5)
        assert [result.type for result in bundle.results] == [RecommendationType.TRENDING]


class TestStrategies:

    @pytest.mark.unit
    def test_one_strategy_per_type(self):
        assert set(STRATEGIES) == set(RecommendationType)

    @pytest.mark.unit
    def test_engine_is_read_only(self, recommendation_engine, store):
        before = {sku: product.model_dump() for sku, product in store.products.items()}

        recommendation_engine.get_similar_products("ANCHW200", 10)
        recommendation_engine.get_trending_products(None, 10)
        recommendation_engine.get_complementary_products("ANCHW200", 10)

        assert {sku: product.model_dump() for sku, product in store.products.items()} == before
