"""
Tests for slug generation and de-duplication.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from publishing.services.slugs import MAX_SLUG_LENGTH, ensure_unique_slug, generate_slug


class TestGenerateSlug:
    def test_lowercases_and_hyphenates(self):
        assert generate_slug("Hello World") == "hello-world"

    def test_collapses_special_characters(self):
        assert generate_slug("  Python 3.12: What's New?!  ") == "python-3-12-what-s-new"

    def test_chinese_title_becomes_pinyin(self):
        assert generate_slug("你好世界") == "ni-hao-shi-jie"

    def test_mixed_chinese_and_latin(self):
        assert generate_slug("学习 Python 入门") == "xue-xi-python-ru-men"

    def test_symbols_only_yield_empty_slug(self):
        assert generate_slug("🚀 ✨") == ""

    def test_truncates_long_titles(self):
        slug = generate_slug("word " * 100)
        assert len(slug) <= MAX_SLUG_LENGTH
        assert not slug.endswith("-")


class TestEnsureUniqueSlug:
    async def test_free_slug_is_returned_unchanged(self, db_session: AsyncSession):
        assert await ensure_unique_slug(db_session, "fresh") == "fresh"

    async def test_taken_slug_gets_numeric_suffix(self, db_session: AsyncSession, make_post):
        await make_post(slug="hello-world")
        await make_post(slug="hello-world-2")

        assert await ensure_unique_slug(db_session, "hello-world") == "hello-world-3"

    async def test_suffix_fits_within_max_length(self, db_session: AsyncSession, make_post):
        base = "a" * MAX_SLUG_LENGTH
        await make_post(slug=base)

        candidate = await ensure_unique_slug(db_session, base)

        assert len(candidate) == MAX_SLUG_LENGTH
        assert candidate == "a" * (MAX_SLUG_LENGTH - 2) + "-2"

    async def test_truncation_does_not_leave_double_hyphen(
        self, db_session: AsyncSession, make_post
    ):
        base = "a" * (MAX_SLUG_LENGTH - 3) + "-bc"
        await make_post(slug=base)

        candidate = await ensure_unique_slug(db_session, base)

        assert "--" not in candidate
        assert candidate.endswith("-2")
        assert len(candidate) <= MAX_SLUG_LENGTH
