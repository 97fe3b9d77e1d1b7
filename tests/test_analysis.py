import pytest

from emailsift.analysis import (
    AddressAnalysis,
    DomainAnalysis,
    address_sort_key,
    domain_sort_key,
    fold_addresses,
    fold_domains,
    merge_into,
    merge_maps,
    truncate,
)
from emailsift.config import ParserConfig, ValidationConfig
from emailsift.models import ListOrder
from emailsift.parser import parse_address

CASE_INSENSITIVE = ParserConfig(case_sensitive=False)


def _parse(raw, parser=CASE_INSENSITIVE):
    return parse_address(raw, ValidationConfig.generic(), parser)


def test_address_analysis_groups_variations():
    analysis = AddressAnalysis.from_parsed(_parse("a1+news@example.com"))
    assert analysis.fold(_parse("A1@Example.com")) is True
    assert analysis.fold(_parse("a1+news@example.com")) is True
    assert analysis.fold(_parse("a1+shop@example.com")) is True

    assert analysis.canonical_address == "a1@example.com"
    assert analysis.domain == "example.com"
    assert analysis.local_part == "a1"
    assert analysis.total_count == 4
    assert analysis.occurrence_count == 4
    assert analysis.unique_variation_count == 3
    assert analysis.unique_sub_address_count == 2


def test_address_analysis_fold_ignores_foreign_and_invalid_results():
    analysis = AddressAnalysis.from_parsed(_parse("a@x.com"))
    assert analysis.fold(_parse("b@x.com")) is False
    assert analysis.fold(_parse("a@y.com")) is False
    assert analysis.fold(_parse("a@x")) is False
    assert analysis.raw_addresses == ["a@x.com"]


def test_from_parsed_rejects_invalid_results():
    with pytest.raises(ValueError):
        AddressAnalysis.from_parsed(_parse("invalid"))
    with pytest.raises(ValueError):
        DomainAnalysis.from_parsed(_parse("invalid"))


def test_domain_analysis_counts():
    analysis = DomainAnalysis.from_parsed(_parse("a+1@x.com"))
    for raw in ["a+1@x.com", "b@X.COM", "a@x.com", "c+2@x.com"]:
        assert analysis.fold(_parse(raw)) is True
    assert analysis.fold(_parse("a@y.com")) is False

    assert analysis.total_address_count == 5
    assert analysis.occurrence_count == 5
    assert analysis.unique_address_count == 3
    assert analysis.local_parts == ["a", "a", "b", "a", "c"]
    assert analysis.total_sub_address_count == 3
    assert analysis.unique_sub_address_count == 2


def test_merge_matches_folding_in_either_order():
    raws = ["a@x.com", "A+1@x.com", "a+2@x.com", "a@x.com"]
    parsed = [_parse(raw) for raw in raws]

    left = fold_addresses(parsed[:2])
    right = fold_addresses(parsed[2:])
    merged_lr = merge_maps(left, right)["a@x.com"]
    merged_rl = merge_maps(right, left)["a@x.com"]
    single = fold_addresses(parsed)["a@x.com"]

    for analysis in (merged_lr, merged_rl):
        assert analysis.total_count == single.total_count
        assert analysis.unique_variation_count == single.unique_variation_count
        assert analysis.unique_sub_address_count == single.unique_sub_address_count
        assert sorted(analysis.raw_addresses) == sorted(single.raw_addresses)
    assert merged_lr == single


def test_merge_rejects_different_keys():
    a = AddressAnalysis.from_parsed(_parse("a@x.com"))
    b = AddressAnalysis.from_parsed(_parse("b@x.com"))
    with pytest.raises(ValueError):
        a.merge(b)
    x = DomainAnalysis.from_parsed(_parse("a@x.com"))
    y = DomainAnalysis.from_parsed(_parse("a@y.com"))
    with pytest.raises(ValueError):
        x.merge(y)


def test_merge_maps_leaves_inputs_untouched():
    left = fold_domains([_parse("a@x.com")])
    right = fold_domains([_parse("b@x.com"), _parse("c@y.com")])
    merged = merge_maps(left, right)
    assert set(merged) == {"x.com", "y.com"}
    assert merged["x.com"].total_address_count == 2
    assert left["x.com"].total_address_count == 1
    assert right["x.com"].total_address_count == 1


def test_fold_skips_invalid_results():
    parsed = [_parse(raw) for raw in ["a@x.com", "nope", "a@x", "b@y.com"]]
    assert set(fold_addresses(parsed)) == {"a@x.com", "b@y.com"}
    assert set(fold_domains(parsed)) == {"x.com", "y.com"}


def test_sort_keys():
    grouped = fold_addresses(
        _parse(raw) for raw in ["z@a.com", "b@z.com", "b@z.com", "a@z.com", "a@z.com"]
    )
    items = list(grouped.values())

    by_name = sorted(items, key=address_sort_key(ListOrder.ALPHABETICAL))
    assert [a.canonical_address for a in by_name] == ["a@z.com", "b@z.com", "z@a.com"]

    by_domain = sorted(items, key=address_sort_key(ListOrder.DOMAIN_ALPHABETICAL))
    assert [a.canonical_address for a in by_domain] == ["z@a.com", "a@z.com", "b@z.com"]

    by_count = sorted(items, key=address_sort_key(ListOrder.OCCURRENCES))
    assert [a.canonical_address for a in by_count] == ["a@z.com", "b@z.com", "z@a.com"]

    domains = list(fold_domains(_parse(raw) for raw in ["a@b.com", "a@c.com", "b@c.com"]).values())
    assert [d.domain for d in sorted(domains, key=domain_sort_key(ListOrder.OCCURRENCES))] == [
        "c.com",
        "b.com",
    ]
    assert [d.domain for d in sorted(domains, key=domain_sort_key(ListOrder.ALPHABETICAL))] == [
        "b.com",
        "c.com",
    ]


def test_truncate_only_applies_to_occurrence_order():
    items = [1, 2, 3]
    assert truncate(items, ListOrder.OCCURRENCES, 2) == [1, 2]
    assert truncate(items, ListOrder.OCCURRENCES, None) == [1, 2, 3]
    assert truncate(items, ListOrder.ALPHABETICAL, 2) == [1, 2, 3]
    assert truncate(items, ListOrder.DOMAIN_ALPHABETICAL, 1) == [1, 2, 3]


def test_merge_into_absorbs_records_in_place():
    target = fold_domains([_parse("a@x.com")])
    record = target["x.com"]
    local_parts = record.local_parts
    partial = fold_domains([_parse("b+1@x.com"), _parse("c@y.com")])

    assert merge_into(target, partial) is target
    assert target["x.com"] is record
    assert record.local_parts is local_parts
    assert local_parts == ["a", "b"]
    assert record.unique_sub_addresses == {"+1"}
    assert target["y.com"] is partial["y.com"]


def test_absorb_rejects_different_keys():
    a = AddressAnalysis.from_parsed(_parse("a@x.com"))
    with pytest.raises(ValueError):
        a.absorb(AddressAnalysis.from_parsed(_parse("b@x.com")))
    x = DomainAnalysis.from_parsed(_parse("a@x.com"))
    with pytest.raises(ValueError):
        x.absorb(DomainAnalysis.from_parsed(_parse("a@y.com")))
