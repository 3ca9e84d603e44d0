"""Rule domain: pattern-to-category rules and the URL resolver."""

from curate.rules.models import (
    Classification,
    MatchSource,
    Rule,
    RuleLoadResult,
    RuleParseWarning,
)
from curate.rules.services import (
    RuleResolver,
    add_rule,
    ensure_default_rules,
    heuristic_category,
    load_rules,
    merge_tags,
    parse_rules,
    url_domain,
)

__all__ = [
    "Classification",
    "MatchSource",
    "Rule",
    "RuleLoadResult",
    "RuleParseWarning",
    "RuleResolver",
    "add_rule",
    "ensure_default_rules",
    "heuristic_category",
    "load_rules",
    "merge_tags",
    "parse_rules",
    "url_domain",
]
