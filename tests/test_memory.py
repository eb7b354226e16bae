"""InMemoryCollection のユニットテスト"""

import re
from datetime import datetime, timezone

import pytest
from bson import ObjectId
from k1s0_cursor_pagination import InMemoryCollection
from k1s0_cursor_pagination.memory import matches, sort_documents


def test_matches_comparison_operators() -> None:
    """比較演算子を評価できること。"""
    document = {"name": "foo", "rank": 5}
    assert matches(document, {"rank": {"$gt": 4}})
    assert matches(document, {"rank": {"$gte": 5, "$lte": 5}})
    assert not matches(document, {"rank": {"$lt": 5}})
    assert matches(document, {"name": {"$eq": "foo"}})
    assert matches(document, {"name": {"$ne": "bar"}})
    assert matches(document, {"name": {"$in": ["foo", "bar"]}})
    assert matches(document, {"name": {"$nin": ["bar"]}})
    assert matches(document, {"name": "foo", "rank": 5})


def test_matches_logical_operators() -> None:
    document = {"name": "foo", "rank": 5}
    assert matches(document, {"$and": [{"name": "foo"}, {"rank": 5}]})
    assert matches(document, {"$or": [{"name": "bar"}, {"rank": 5}]})
    assert not matches(document, {"$nor": [{"name": "foo"}]})
    assert matches(document, {"$and": [{}]})


def test_matches_does_not_compare_across_types() -> None:
    """型ブラケットが異なる値は範囲比較に一致しないこと。"""
    assert not matches({"rank": "5"}, {"rank": {"$gt": 1}})
    assert not matches({}, {"rank": {"$lt": 1}})


def test_matches_missing_and_null() -> None:
    assert matches({}, {"rank": None})
    assert matches({"rank": None}, {"rank": None})
    assert matches({"rank": 1}, {"rank": {"$exists": True}})
    assert matches({}, {"rank": {"$exists": False}})


def test_matches_regex() -> None:
    """$regex と $options を評価できること。"""
    document = {"name": "Test Item 1"}
    assert matches(document, {"name": {"$regex": "test item.*", "$options": "i"}})
    assert not matches(document, {"name": {"$regex": "test item.*"}})
    assert matches(document, {"name": re.compile("^Test")})


def test_matches_dotted_path() -> None:
    assert matches({"meta": {"rank": 3}}, {"meta.rank": {"$gt": 2}})


def test_matches_unknown_operator() -> None:
    with pytest.raises(ValueError):
        matches({"rank": 1}, {"rank": {"$where": "x"}})


def test_sort_documents_multiple_keys() -> None:
    """複数キー・混在方向でソートできること。"""
    documents = [
        {"data": "5", "name": "a"},
        {"data": "4", "name": "b"},
        {"data": "5", "name": "c"},
        {"data": "4", "name": "a"},
    ]
    result = sort_documents(documents, [("data", 1), ("name", -1)])
    assert [(d["data"], d["name"]) for d in result] == [("4", "b"), ("4", "a"), ("5", "c"), ("5", "a")]


def test_sort_documents_mixed_datetimes_and_missing() -> None:
    """欠損値は null として先頭に、naive な日時は UTC として比較されること。"""
    documents = [
        {"at": datetime(2024, 1, 2, tzinfo=timezone.utc)},
        {"at": datetime(2024, 1, 1)},
        {},
    ]
    result = sort_documents(documents, [("at", 1)])
    assert result[0] == {}
    assert result[1]["at"] == datetime(2024, 1, 1)


async def test_find_sort_limit_projection() -> None:
    """ソート・件数制限・射影を適用して返すこと。"""
    collection = InMemoryCollection()
    ids = collection.insert_many([{"name": f"item {i}", "rank": i} for i in range(5)])
    assert all(isinstance(i, ObjectId) for i in ids)

    found = await collection.find(
        {"rank": {"$gte": 1}},
        sort=[("rank", -1)],
        limit=2,
        projection={"_id": 0, "name": 1},
    )
    assert found == [{"name": "item 4"}, {"name": "item 3"}]


async def test_find_returns_copies() -> None:
    collection = InMemoryCollection([{"name": "foo"}])
    found = await collection.find({}, sort=[("_id", 1)], limit=1)
    found[0]["name"] = "changed"
    again = await collection.find({}, sort=[("_id", 1)], limit=1)
    assert again[0]["name"] == "foo"


async def test_count_documents() -> None:
    collection = InMemoryCollection([{"rank": i} for i in range(5)])
    assert await collection.count_documents({"rank": {"$lt": 3}}) == 3


async def test_aggregate_stages() -> None:
    """$match / $sort / $skip / $limit / $count ステージを実行できること。"""
    collection = InMemoryCollection([{"rank": i} for i in range(10)])
    result = await collection.aggregate(
        [
            {"$match": {"rank": {"$gte": 2}}},
            {"$sort": {"rank": -1}},
            {"$skip": 1},
            {"$limit": 3},
            {"$project": {"_id": 0}},
        ]
    )
    assert result == [{"rank": 8}, {"rank": 7}, {"rank": 6}]
    assert await collection.aggregate([{"$count": "count"}]) == [{"count": 10}]
    assert await collection.aggregate([{"$match": {"rank": 99}}, {"$count": "count"}]) == []


async def test_delete_many() -> None:
    collection = InMemoryCollection([{"rank": i} for i in range(4)])
    assert collection.delete_many({"rank": {"$gte": 2}}) == 2
    assert await collection.count_documents({}) == 2


async def test_insert_truncates_datetimes_to_milliseconds() -> None:
    """保存時に入れ子を含む日時がミリ秒精度に切り詰められること。"""
    at = datetime(2024, 1, 15, 10, 30, 0, 123456, tzinfo=timezone.utc)
    original = {"at": at, "nested": {"at": at}, "history": [at, {"at": at}]}
    collection = InMemoryCollection([original])

    [found] = await collection.find({}, sort=[("_id", 1)], limit=1)
    truncated = at.replace(microsecond=123000)
    assert found["at"] == truncated
    assert found["nested"]["at"] == truncated
    assert found["history"] == [truncated, {"at": truncated}]
    assert original["at"] == at
