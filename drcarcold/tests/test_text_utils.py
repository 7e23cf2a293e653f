"""
Tests for the slug, schedule time and keyword helpers.
"""

import pytest

from drcarcold.models import News
from drcarcold.utils.text import (
    chinese_ratio,
    contains_chinese,
    find_keywords,
    is_valid_time,
    parse_times,
    slugify_title,
    split_keywords,
    unique_slug,
)


class TestSlugifyTitle:
    def test_keeps_chinese_characters(self):
        assert slugify_title("R-134a 冷媒 Guide!") == "r-134a-冷媒-guide"

    def test_collapses_punctuation(self):
        assert slugify_title("  冷氣，不冷？？怎麼辦  ") == "冷氣-不冷-怎麼辦"

    def test_truncates_without_trailing_dash(self):
        slug = slugify_title("abc def ghi", max_length=4)

        assert slug == "abc"

    def test_empty(self):
        assert slugify_title("!!!") == ""


@pytest.mark.django_db
class TestUniqueSlug:
    def test_appends_counter(self):
        News.objects.create(title="冷媒", slug="冷媒", content="x")
        News.objects.create(title="冷媒", slug="冷媒-2", content="y")

        assert unique_slug(News, "冷媒") == "冷媒-3"

    def test_falls_back_to_random_slug(self):
        slug = unique_slug(News, "???")

        assert len(slug) == 8


class TestScheduleTimes:
    @pytest.mark.parametrize("value", ["9:05", "09:05", "23:59", "00:00"])
    def test_valid(self, value):
        assert is_valid_time(value)

    @pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "", "9"])
    def test_invalid(self, value):
        assert not is_valid_time(value)

    def test_parse_times_pads_and_drops_invalid(self):
        assert parse_times("9:00, 25:00,21:30") == ["09:00", "21:30"]


class TestKeywords:
    def test_split_accepts_fullwidth_commas(self):
        assert split_keywords("冷媒，R134a, ,冷氣") == ["冷媒", "R134a", "冷氣"]

    def test_find_keywords_is_case_insensitive(self):
        text = "更換 r134a 冷媒前請先檢查冷氣管路"

        assert find_keywords(text, ["R134a", "R1234yf", "冷氣"]) == ["R134a", "冷氣"]

    def test_chinese_ratio(self):
        assert chinese_ratio("冷媒ab") == 0.5
        assert chinese_ratio("") == 0.0
        assert contains_chinese("AC 冷氣")
        assert not contains_chinese("air conditioning")
