import pytest
from sqlalchemy import column

from mqstore.errors import InvalidTopicFilterError
from mqstore.topics import TopicMatcher, compile_filter, escape_literal, has_wildcards, matches, validate_filter


class TestCompileFilter:
    def test_single_level_wildcard(self):
        assert compile_filter("sensors/+/temp") == "(?s)^sensors/[^/]*/temp(?!.)"

    def test_trailing_multi_level(self):
        assert compile_filter("a/#") == "(?s)^a(/.*)?(?!.)"

    def test_lone_multi_level(self):
        assert compile_filter("#") == "(?s)^([^$].*)?(?!.)"

    def test_leading_single_level_skips_dollar_topics(self):
        assert compile_filter("+/status") == "(?s)^([^$/][^/]*)?/status(?!.)"

    def test_literal_metacharacters_are_escaped(self):
        assert compile_filter("a.b/+/c$") == "(?s)^a\\.b/[^/]*/c\\$(?!.)"

    def test_invalid_filter_is_rejected(self):
        with pytest.raises(InvalidTopicFilterError):
            compile_filter("a/#/b")


class TestMatches:
    @pytest.mark.parametrize(
        "topic,expected",
        [
            ("a/b/c", True),
            ("a/x/c", True),
            ("a//c", True),
            ("a/b/x/c", False),
            ("a/c", False),
            ("a/b/c/d", False),
        ],
    )
    def test_plus_matches_exactly_one_level(self, topic, expected):
        assert matches("a/+/c", topic) is expected

    @pytest.mark.parametrize(
        "topic,expected",
        [("a", True), ("a/b", True), ("a/b/c", True), ("ab", False), ("b/a", False)],
    )
    def test_hash_matches_prefix_and_descendants(self, topic, expected):
        assert matches("a/#", topic) is expected

    def test_exact_filter_is_equality(self):
        assert matches("sensors/room1/temp", "sensors/room1/temp")
        assert not matches("sensors/room1/temp", "sensors/room1/Temp")

    def test_dot_is_not_a_wildcard(self):
        assert matches("a.b/+", "a.b/c")
        assert not matches("a.b/+", "axb/c")

    def test_regex_characters_in_topic_are_literal(self):
        assert matches("price/(usd)/+", "price/(usd)/now")
        assert not matches("price/(usd)/+", "price/usd/now")

    def test_newlines_in_topics(self):
        assert matches("a/#", "a/b\nc")
        assert matches("#", "x\ny")
        assert matches("a/+", "a/b\n")
        assert not matches("a/+/c", "a/b/c\n")
        assert not matches("a/b", "a/b\n")

    def test_dollar_topics_hidden_from_leading_wildcards(self):
        assert not matches("#", "$SYS/broker/uptime")
        assert not matches("+/broker/uptime", "$SYS/broker/uptime")
        assert matches("$SYS/#", "$SYS/broker/uptime")
        assert matches("#", "sensors/room1")


class TestValidateFilter:
    @pytest.mark.parametrize("bad", ["", "a/#/b", "a#", "a/b#", "a+/b", "a/+b", "a\x00b"])
    def test_rejects(self, bad):
        with pytest.raises(InvalidTopicFilterError):
            validate_filter(bad)

    @pytest.mark.parametrize("good", ["a", "a/b", "+", "#", "+/+", "a/+/#", "/a", "a/"])
    def test_accepts(self, good):
        validate_filter(good)

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_filter("")


def test_has_wildcards():
    assert has_wildcards("a/+")
    assert has_wildcards("#")
    assert not has_wildcards("a/b")


def test_escape_literal():
    assert escape_literal("a.b*c") == "a\\.b\\*c"
    assert escape_literal("plain") == "plain"


class TestTopicMatcher:
    def test_splits_exact_and_patterns(self):
        matcher = TopicMatcher(["a/b", "a/+", "a/b", "c/#"])
        assert matcher.exact == ("a/b",)
        assert matcher.patterns == (compile_filter("a/+"), compile_filter("c/#"))

    def test_empty_matcher_is_falsy(self):
        assert not TopicMatcher([])
        assert TopicMatcher(["x"])

    def test_matches_any_filter(self):
        matcher = TopicMatcher(["a/b", "c/#"])
        assert matcher.matches("a/b")
        assert matcher.matches("c/d/e")
        assert not matcher.matches("a/c")

    def test_clause_uses_in_for_several_exact_topics(self):
        clause = TopicMatcher(["a", "b"]).clause(column("topic"))
        assert "IN" in str(clause)

    def test_clause_uses_equality_for_one_exact_topic(self):
        clause = TopicMatcher(["a"]).clause(column("topic"))
        assert str(clause) == "topic = :topic_1"

    def test_invalid_filter_fails_on_construction(self):
        with pytest.raises(InvalidTopicFilterError):
            TopicMatcher(["ok", "bad#"])
