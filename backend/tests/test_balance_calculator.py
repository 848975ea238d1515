"""Tests for per-day balance computation."""

from datetime import date

import pytest

from stockledger.core.exceptions import ItemNotFoundError
from stockledger.models.movement import MovementKind, StockMovement
from stockledger.services.balance_calculator import BalanceCalculator, reduce_movements

from conftest import TODAY


def _row(id_, kind, quantity):
    return StockMovement(id=id_, item_id=1, kind=kind, quantity=quantity, movement_date=TODAY)


class TestReduceMovements:
    def test_empty_day_is_all_zero(self):
        balance = reduce_movements(1, TODAY, [])
        assert balance.beginning == 0
        assert balance.total_inventory == 0
        assert balance.remaining == 0
        assert balance.movement_count == 0
        assert balance.has_beginning is False

    def test_default_beginning_used_without_beginning_row(self):
        balance = reduce_movements(1, TODAY, [_row(1, "in", 5)], default_beginning=20)
        assert balance.beginning == 20
        assert balance.total_inventory == 25
        assert balance.remaining == 25

    def test_in_out_spoilage_are_summed(self):
        rows = [
            _row(1, "beginning", 10),
            _row(2, "in", 4),
            _row(3, "in", 6),
            _row(4, "out", 3),
            _row(5, "out", 2),
            _row(6, "spoilage", 1),
        ]
        balance = reduce_movements(1, TODAY, rows)
        assert balance.in_quantity == 10
        assert balance.out_quantity == 5
        assert balance.spoilage == 1
        assert balance.total_inventory == 20
        assert balance.remaining == 14

    def test_remaining_is_floored_at_zero(self):
        rows = [_row(1, "beginning", 5), _row(2, "out", 8)]
        assert reduce_movements(1, TODAY, rows).remaining == 0

    def test_last_created_beginning_wins_regardless_of_order(self):
        early = _row(1, "beginning", 30)
        late = _row(2, "beginning", 70)
        assert reduce_movements(1, TODAY, [early, late]).beginning == 70
        assert reduce_movements(1, TODAY, [late, early]).beginning == 70

    def test_adjustment_overwrites_remaining(self):
        rows = [
            _row(1, "beginning", 100),
            _row(2, "out", 10),
            _row(3, "adjustment", 42),
            _row(4, "in", 5),
        ]
        balance = reduce_movements(1, TODAY, rows)
        assert balance.total_inventory == 105
        assert balance.remaining == 42
        assert balance.adjusted is True

    def test_last_adjustment_wins(self):
        rows = [_row(2, "adjustment", 9), _row(1, "adjustment", 3)]
        assert reduce_movements(1, TODAY, rows).remaining == 9

    def test_unknown_kind_is_ignored(self):
        rows = [_row(1, "beginning", 10), _row(2, "transfer", 99)]
        balance = reduce_movements(1, TODAY, rows)
        assert balance.remaining == 10
        assert balance.movement_count == 2

    def test_to_dict_serializes_date(self):
        data = reduce_movements(1, TODAY, []).to_dict()
        assert data["date"] == TODAY.isoformat()
        assert data["remaining"] == 0


class TestBalanceCalculator:
    def test_item_without_movements(self, db_session, test_item):
        """Item with no history degrades to zero balances."""
        balance = BalanceCalculator(db_session).compute_balance(test_item.id, date(2024, 3, 5))
        assert (
            balance.beginning,
            balance.in_quantity,
            balance.out_quantity,
            balance.spoilage,
            balance.total_inventory,
            balance.remaining,
        ) == (0, 0, 0, 0, 0, 0)

    def test_full_day(self, db_session, test_item, add_movement):
        add_movement(test_item, "beginning", 100, TODAY)
        add_movement(test_item, "in", 50, TODAY)
        add_movement(test_item, "out", 30, TODAY)
        add_movement(test_item, "spoilage", 5, TODAY)

        balance = BalanceCalculator(db_session).compute_balance(test_item.id, TODAY)
        assert balance.total_inventory == 150
        assert balance.remaining == 115

    def test_only_reads_requested_day(self, db_session, test_item, add_movement):
        add_movement(test_item, "beginning", 100, date(2026, 3, 14))
        add_movement(test_item, "in", 7, TODAY)

        balance = BalanceCalculator(db_session).compute_balance(test_item.id, TODAY)
        assert balance.beginning == 0
        assert balance.remaining == 7

    def test_duplicate_beginnings_use_latest(self, db_session, test_item, add_movement):
        add_movement(test_item, "beginning", 30, TODAY)
        add_movement(test_item, "beginning", 80, TODAY)

        calculator = BalanceCalculator(db_session)
        assert calculator.compute_balance(test_item.id, TODAY).beginning == 80
        assert calculator.compute_balance(test_item.id, TODAY).beginning == 80

    def test_no_adjustment_invariant(self, db_session, test_item, add_movement):
        for kind, qty in [("beginning", 12), ("in", 3), ("out", 4), ("spoilage", 2), ("in", 1), ("out", 6)]:
            add_movement(test_item, kind, qty, TODAY)

        balance = BalanceCalculator(db_session).compute_balance(test_item.id, TODAY)
        assert balance.remaining == max(0, 12 + 4 - 10 - 2)

    def test_unknown_item(self, db_session):
        with pytest.raises(ItemNotFoundError):
            BalanceCalculator(db_session).compute_balance(999, TODAY)

    def test_kind_enum_compares_with_stored_value(self):
        assert MovementKind.BEGINNING == "beginning"
