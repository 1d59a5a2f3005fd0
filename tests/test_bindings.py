"""Tests for binding patterns and topic matching."""
import pytest

from brokersim.bindings import (
    Binding,
    BindingTable,
    ExchangeType,
    topic_matches,
    validate_pattern,
)
from brokersim.errors import InvalidBindingPattern, InvalidConfiguration


class TestTopicMatching:
    @pytest.mark.parametrize(
        "key", ["orders", "orders.created", "orders.created.eu"]
    )
    def test_hash_matches_zero_or_more_trailing_segments(self, key: str) -> None:
        assert topic_matches("orders.#", key)

    def test_hash_requires_prefix(self) -> None:
        assert not topic_matches("orders.#", "billing.created")

    def test_star_matches_exactly_one_segment(self) -> None:
        assert topic_matches("orders.*.paid", "orders.eu.paid")
        assert not topic_matches("orders.*.paid", "orders.paid")
        assert not topic_matches("orders.*.paid", "orders.eu.us.paid")

    def test_literal_segments_must_match(self) -> None:
        assert topic_matches("orders.created", "orders.created")
        assert not topic_matches("orders.created", "orders.deleted")
        assert not topic_matches("orders.created", "orders.created.eu")

    def test_lone_hash_matches_everything(self) -> None:
        assert topic_matches("#", "users.signup")
        assert topic_matches("#", "orders")


class TestPatternValidation:
    def test_hash_must_be_last(self) -> None:
        with pytest.raises(InvalidBindingPattern):
            validate_pattern(ExchangeType.TOPIC, "orders.#.eu")

    def test_empty_segment_rejected(self) -> None:
        with pytest.raises(InvalidBindingPattern):
            validate_pattern(ExchangeType.TOPIC, "orders..created")

    def test_direct_pattern_must_not_be_empty(self) -> None:
        with pytest.raises(InvalidBindingPattern):
            validate_pattern(ExchangeType.DIRECT, "")

    def test_direct_patterns_are_not_checked(self) -> None:
        validate_pattern(ExchangeType.DIRECT, "orders..created")


class TestBindingTable:
    def test_invalid_pattern_is_not_registered(self) -> None:
        table = BindingTable()
        with pytest.raises(InvalidBindingPattern):
            table.add(Binding(ExchangeType.TOPIC, "#.orders", "q1"))
        assert len(table) == 0

    def test_direct_matches_exact_key_only(self) -> None:
        table = BindingTable()
        table.add(Binding(ExchangeType.DIRECT, "a", "q1"))
        table.add(Binding(ExchangeType.DIRECT, "b", "q2"))
        assert table.matching_queues(ExchangeType.DIRECT, "a") == ["q1"]
        assert table.matching_queues(ExchangeType.DIRECT, "c") == []

    def test_queue_listed_once_for_overlapping_patterns(self) -> None:
        table = BindingTable()
        table.add(Binding(ExchangeType.TOPIC, "orders.#", "q1"))
        table.add(Binding(ExchangeType.TOPIC, "orders.created", "q1"))
        assert table.matching_queues(ExchangeType.TOPIC, "orders.created") == ["q1"]

    def test_fanout_ignores_key(self) -> None:
        table = BindingTable()
        table.add(Binding(ExchangeType.FANOUT, "", "q1"))
        table.add(Binding(ExchangeType.FANOUT, "", "q2"))
        assert table.matching_queues(ExchangeType.FANOUT, "anything") == ["q1", "q2"]

    def test_retype_rejects_bad_topic_pattern_without_change(self) -> None:
        table = BindingTable()
        table.add(Binding(ExchangeType.DIRECT, "a..b", "q1"))
        with pytest.raises(InvalidBindingPattern):
            table.retype(ExchangeType.TOPIC)
        assert table.bindings == [Binding(ExchangeType.DIRECT, "a..b", "q1")]

    def test_retype_from_fanout_names_queues_without_patterns(self) -> None:
        table = BindingTable()
        table.add(Binding(ExchangeType.FANOUT, "", "q1"))
        table.add(Binding(ExchangeType.FANOUT, "", "q2"))
        with pytest.raises(InvalidConfiguration) as excinfo:
            table.retype(ExchangeType.TOPIC, {"q1": "orders.#"})
        assert excinfo.value.details["queues"] == ["q2"]
        assert len(table) == 2

        table.retype(ExchangeType.TOPIC, {"q1": "orders.#", "q2": "billing.*"})
        assert table.matching_queues(ExchangeType.TOPIC, "billing.paid") == ["q2"]

    def test_references_and_remove_queue(self) -> None:
        table = BindingTable()
        table.add(Binding(ExchangeType.DIRECT, "a", "q1"))
        table.add(Binding(ExchangeType.DIRECT, "b", "q1"))
        table.add(Binding(ExchangeType.DIRECT, "c", "q2"))
        assert len(table.references("q1")) == 2
        assert table.remove_queue("q1") == 2
        assert table.references("q1") == []
