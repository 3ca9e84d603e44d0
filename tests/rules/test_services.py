"""Tests for rule loading and URL classification."""

from pathlib import Path

import pytest
from curate.rules.models import MatchSource, Rule
from curate.rules.services import (
    DEFAULT_RULES_TEXT,
    RuleResolver,
    add_rule,
    ensure_default_rules,
    has_scheme,
    heuristic_category,
    load_rules,
    merge_tags,
    parse_rules,
    url_domain,
)


class TestUrlDomain:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://www.example.com/a", "example.com"),
            ("http://www2.example.com:8080/a", "example.com"),
            ("example.com/path", "example.com"),
            ("https://user:pw@Sub.Example.com/x", "sub.example.com"),
            ("news.ycombinator.com", "news.ycombinator.com"),
            ("youtube.com/watch?v=abc&ref=https://t.co/x", "youtube.com"),
            ("//cdn.example.com/a.js", "cdn.example.com"),
        ],
    )
    def test_extracts_host(self, url: str, expected: str):
        assert url_domain(url) == expected


class TestHeuristic:
    def test_video(self):
        assert heuristic_category("https://youtu.be/abc") == "video"

    def test_blog(self):
        assert heuristic_category("someone.substack.com/p/post") == "blog"

    def test_news(self):
        assert heuristic_category("https://www.reuters.com/world/") == "news"

    def test_suffix_boundary(self):
        # microsoft.com must not match ft.com
        assert heuristic_category("https://microsoft.com/") == "link"

    def test_default(self):
        assert heuristic_category("https://example.com/x") == "link"


class TestParseRules:
    def test_ignores_comments_and_blanks(self):
        result = parse_rules("# comment\n\nexample.com\tblog\t#a b\n")
        assert len(result.rules) == 1
        rule = result.rules[0]
        assert rule.pattern == "example.com"
        assert rule.category == "blog"
        assert rule.default_tags == ("#a", "#b")
        assert rule.line_no == 3
        assert result.warnings == []

    def test_invalid_regex_is_skipped_with_warning(self):
        result = parse_rules("foo(\tvideo\nexample.com\tblog\n")
        assert [r.pattern for r in result.rules] == ["example.com"]
        assert len(result.warnings) == 1
        assert result.warnings[0].line_no == 1
        assert result.warnings[0].pattern == "foo("

    def test_category_optional(self):
        result = parse_rules("example.com\n")
        assert result.rules[0].category == ""

    def test_default_rules_parse_cleanly(self):
        result = parse_rules(DEFAULT_RULES_TEXT)
        assert len(result.rules) == 9
        assert result.warnings == []


class TestRuleFiles:
    def test_missing_table_has_no_rules(self, tmp_path: Path):
        assert load_rules(tmp_path / "rules.tsv").rules == []

    def test_ensure_default_rules_once(self, tmp_path: Path):
        path = tmp_path / "rules.tsv"
        assert ensure_default_rules(path) is True
        path.write_text("custom.example\tblog\n", encoding="utf-8")
        assert ensure_default_rules(path) is False
        assert path.read_text(encoding="utf-8") == "custom.example\tblog\n"

    def test_add_rule_appends(self, tmp_path: Path):
        path = tmp_path / "rules.tsv"
        path.write_text("a.example\tblog", encoding="utf-8")
        add_rule(path, "b.example", "news", ["world"])

        result = load_rules(path)
        assert [r.pattern for r in result.rules] == ["a.example", "b.example"]
        assert result.rules[1].default_tags == ("#world",)

    def test_add_rule_rejects_invalid_pattern(self, tmp_path: Path):
        with pytest.raises(ValueError):
            add_rule(tmp_path / "rules.tsv", "bad(", "video")
        assert not (tmp_path / "rules.tsv").exists()


class TestResolver:
    def test_longest_pattern_wins(self):
        resolver = RuleResolver(
            [
                Rule(pattern="com", category="X"),
                Rule(pattern="example.com", category="Y"),
            ]
        )
        assert resolver.resolve("https://example.com/a").category == "Y"

    def test_longest_wins_regardless_of_order(self):
        resolver = RuleResolver(
            [
                Rule(pattern="example.com", category="Y"),
                Rule(pattern="com", category="X"),
            ]
        )
        assert resolver.resolve("https://example.com/a").category == "Y"

    def test_tie_goes_to_first_declared(self):
        first = Rule(pattern="aaa.com", category="first")
        shorter = Rule(pattern="aa.com", category="short")
        second = Rule(pattern="aa.com/", category="second")
        # "aaa.com" and "aa.com/" are both 7 characters long
        assert RuleResolver([first, shorter, second]).resolve("https://aaa.com/x").category == "first"
        assert RuleResolver([second, shorter, first]).resolve("https://aaa.com/x").category == "second"

    def test_domain_rule_ignores_www(self):
        resolver = RuleResolver([Rule(pattern="youtube.com", category="video", default_tags=("#YouTube",))])
        result = resolver.resolve("https://www.youtube.com/watch?v=abc")
        assert result.category == "video"
        assert result.tags == ("#YouTube",)
        assert result.source == MatchSource.RULE

    def test_domain_rule_does_not_match_path(self):
        resolver = RuleResolver([Rule(pattern="github.com", category="code")])
        assert resolver.resolve("https://example.com/github.com").category == "link"

    def test_regex_rule_searches_whole_url(self):
        resolver = RuleResolver([Rule(pattern=r"\.pdf(?:$|\?)", category="pdf")])
        assert resolver.resolve("https://example.com/paper.PDF").category == "pdf"

    def test_bare_url_without_scheme(self):
        resolver = RuleResolver([Rule(pattern="example.com", category="blog")])
        assert resolver.resolve("example.com/post").category == "blog"

    def test_heuristic_fallback(self):
        result = RuleResolver([]).resolve("https://vimeo.com/1")
        assert result.category == "video"
        assert result.source == MatchSource.HEURISTIC

    def test_default_fallback(self):
        result = RuleResolver([]).resolve("https://example.com/x")
        assert result.category == "link"
        assert result.source == MatchSource.DEFAULT

    def test_user_tags_merge_first(self):
        resolver = RuleResolver([Rule(pattern="example.com", category="blog", default_tags=("#a", "#b"))])
        result = resolver.resolve("https://example.com", ["b", "c"])
        assert result.tags == ("#b", "#c", "#a")

    def test_tags_only_rule_keeps_heuristic_category(self):
        resolver = RuleResolver([Rule(pattern="youtube.com", default_tags=("#watch",))])
        result = resolver.resolve("https://youtube.com/watch?v=1")
        assert result.category == "video"
        assert result.tags == ("#watch",)

    def test_invalid_rule_reported_not_raised(self):
        resolver = RuleResolver(
            [
                Rule(pattern="bad(", category="X", line_no=4),
                Rule(pattern="example.com", category="Y"),
            ]
        )
        assert resolver.resolve("https://example.com").category == "Y"
        assert len(resolver.warnings) == 1
        assert resolver.warnings[0].line_no == 4
        assert [r.pattern for r in resolver.rules] == ["example.com"]


class TestMergeTags:
    def test_user_first_and_deduplicated(self):
        assert merge_tags(["ml", "#ai"], ("#ai", "#papers")) == ("#ml", "#ai", "#papers")

    def test_splits_whitespace(self):
        assert merge_tags(["a b"], ()) == ("#a", "#b")

    def test_drops_empty(self):
        assert merge_tags(["", "#"], ["  "]) == ()


class TestBareUrls:
    URL = "youtube.com/watch?v=abc&ref=https://t.co/x"

    def test_scheme_detection(self):
        assert has_scheme("https://example.com")
        assert has_scheme("git+ssh://host/repo")
        assert not has_scheme(self.URL)
        assert not has_scheme("example.com/?next=http://other.example")

    def test_domain_rule_matches_bare_url_with_embedded_scheme(self):
        resolver = RuleResolver([Rule(pattern="youtube.com", category="video")])
        assert resolver.resolve(self.URL).category == "video"

    def test_heuristic_matches_bare_url_with_embedded_scheme(self):
        assert heuristic_category(self.URL) == "video"


class TestDomainLabels:
    def test_matches_whole_labels_only(self):
        resolver = RuleResolver([Rule(pattern="x.com", category="tweet")])
        assert resolver.resolve("https://x.com/a").category == "tweet"
        assert resolver.resolve("https://mobile.x.com/a").category == "tweet"
        assert resolver.resolve("https://www.netflix.com/title/1").category == "link"
        assert resolver.resolve("https://www.dropbox.com/s/abc").category == "link"

    def test_partial_domain_matches_a_label(self):
        resolver = RuleResolver([Rule(pattern="youtube", category="video")])
        assert resolver.resolve("https://www.youtube.com/x").category == "video"
        assert resolver.resolve("https://notyoutube.com/x").category == "link"


class TestDefaultRules:
    @pytest.fixture
    def resolver(self) -> RuleResolver:
        return RuleResolver(parse_rules(DEFAULT_RULES_TEXT).rules)

    @pytest.mark.parametrize(
        ("url", "category"),
        [
            ("https://www.youtube.com/watch?v=1", "video"),
            ("https://youtu.be/abc", "video"),
            ("https://twitter.com/a/status/1", "tweet"),
            ("https://mobile.twitter.com/a", "tweet"),
            ("https://x.com/a/status/1", "tweet"),
            ("https://someone.substack.com/p/post", "post"),
            ("https://old.reddit.com/r/python", "thread"),
            ("https://news.ycombinator.com/item?id=1", "hn"),
            ("https://github.com/a/b", "code"),
            ("https://example.com/paper.pdf", "pdf"),
            ("https://example.com/paper.pdf#page=2", "pdf"),
        ],
    )
    def test_positive(self, resolver: RuleResolver, url: str, category: str):
        assert resolver.resolve(url).category == category

    @pytest.mark.parametrize(
        ("url", "category"),
        [
            ("https://www.netflix.com/title/1", "link"),
            ("https://www.dropbox.com/s/abc", "link"),
            ("https://www.notreddit.com/x", "link"),
            ("https://example.com/github.com/x", "link"),
            ("https://vimeo.com/1", "video"),
        ],
    )
    def test_lookalike_hosts(self, resolver: RuleResolver, url: str, category: str):
        assert resolver.resolve(url).category == category

    def test_user_rule_replaces_starter_rule(self, tmp_path: Path):
        path = tmp_path / "rules.tsv"
        ensure_default_rules(path)
        add_rule(path, "youtube.com", "video", ["YouTube"])

        result = load_rules(path)
        youtube = [r for r in result.rules if r.pattern == "youtube.com"]
        assert len(youtube) == 1
        assert youtube[0].default_tags == ("#YouTube",)
        assert len(result.rules) == 9

        resolved = RuleResolver(result.rules).resolve("https://www.youtube.com/watch?v=abc")
        assert resolved.tags == ("#YouTube",)

    def test_replace_keeps_comments_and_order(self, tmp_path: Path):
        path = tmp_path / "rules.tsv"
        path.write_text("# mine\na.example\tblog\nb.example\tnews\n", encoding="utf-8")
        add_rule(path, "A.example", "video")
        assert path.read_text(encoding="utf-8") == "# mine\nA.example\tvideo\t\nb.example\tnews\n"
