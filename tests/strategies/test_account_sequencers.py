"""
Tests for account sequencers.
"""

from decimal import Decimal

import pytest

from nestegglab.core.enums import AccountType
from nestegglab.core.errors import ValidationError
from nestegglab.core.kinds import K
from nestegglab.core.registry import create_sequencer
from nestegglab.strategies import (
    BracketAwareSequencer,
    CustomSequencer,
    ProRataSequencer,
    RmdFirstSequencer,
    TaxEfficientSequencer,
)


def _ids(accounts):
    return [a.account_id for a in accounts]


def _lines(lines):
    return {account.account_id: amount for account, amount in lines}


class TestTaxEfficientSequencer:
    def test_tax_order(self, make_account, make_context):
        context = make_context(
            [
                make_account("hsa", AccountType.HSA, "5000"),
                make_account("roth", AccountType.ROTH_IRA, "300000"),
                make_account("big-ira", AccountType.TRADITIONAL_IRA, "400000"),
                make_account("small-401k", AccountType.TRADITIONAL_401K, "20000"),
                make_account("brokerage", AccountType.TAXABLE_BROKERAGE, "100000"),
            ]
        )
        ordered = TaxEfficientSequencer().sequence(context.simulation.accounts, context)
        assert _ids(ordered) == ["brokerage", "small-401k", "big-ira", "roth", "hsa"]

    def test_skips_empty_accounts(self, make_account, make_context):
        context = make_context(
            [
                make_account("brokerage", AccountType.TAXABLE_BROKERAGE, "0"),
                make_account("ira", AccountType.TRADITIONAL_IRA, "1000"),
            ]
        )
        ordered = TaxEfficientSequencer().sequence(context.simulation.accounts, context)
        assert _ids(ordered) == ["ira"]


class TestRmdFirstSequencer:
    def test_rmd_accounts_lead_once_required(self, make_account, make_context):
        accounts = [
            make_account("brokerage", AccountType.TAXABLE_BROKERAGE, "200000"),
            make_account("ira", AccountType.TRADITIONAL_IRA, "100000"),
            make_account("k401", AccountType.TRADITIONAL_401K, "400000"),
            make_account("roth", AccountType.ROTH_IRA, "300000"),
        ]
        context = make_context(accounts, age=73, birth_year=1952)
        ordered = RmdFirstSequencer().sequence(context.simulation.accounts, context)
        assert _ids(ordered) == ["k401", "ira", "brokerage", "roth"]

    def test_tax_efficient_before_rmd_age(self, mixed_accounts, make_context):
        context = make_context(mixed_accounts, age=65, birth_year=1960)
        ordered = RmdFirstSequencer().sequence(context.simulation.accounts, context)
        assert _ids(ordered) == ["brokerage", "ira", "roth"]


class TestProRataSequencer:
    def test_proportional_shares(self, mixed_accounts, make_context):
        context = make_context(mixed_accounts)
        lines = ProRataSequencer().allocate(
            context.simulation.accounts, Decimal("10000"), context
        )
        assert _lines(lines) == {
            "ira": Decimal("5000.00"),
            "roth": Decimal("3000.00"),
            "brokerage": Decimal("2000.00"),
        }

    def test_last_account_absorbs_rounding(self, make_account, make_context):
        context = make_context(
            [make_account(name, balance="100") for name in ("a", "b", "c")]
        )
        lines = ProRataSequencer().allocate(context.simulation.accounts, Decimal("100"), context)
        assert [amount for _, amount in lines] == [
            Decimal("33.33"),
            Decimal("33.33"),
            Decimal("33.34"),
        ]

    def test_target_above_total_is_capped(self, make_account, make_context):
        context = make_context([make_account("a", balance="50"), make_account("b", balance="25")])
        lines = ProRataSequencer().allocate(context.simulation.accounts, Decimal("500"), context)
        assert sum(amount for _, amount in lines) == Decimal("75.00")

    def test_zero_target(self, mixed_accounts, make_context):
        context = make_context(mixed_accounts)
        assert ProRataSequencer().allocate(context.simulation.accounts, Decimal("0"), context) == []


class TestCustomSequencer:
    def test_listed_accounts_first(self, mixed_accounts, make_context):
        context = make_context(mixed_accounts)
        ordered = CustomSequencer(order=["roth", "missing"]).sequence(
            context.simulation.accounts, context
        )
        assert _ids(ordered) == ["roth", "brokerage", "ira"]

    def test_duplicate_ids(self):
        with pytest.raises(ValidationError):
            CustomSequencer(order=["roth", "roth"])


class TestBracketAwareSequencer:
    def test_fills_bracket_with_pre_tax_first(self, mixed_accounts, make_context):
        context = make_context(mixed_accounts, current_taxable_income=Decimal("60000"))
        sequencer = BracketAwareSequencer()

        assert sequencer.monthly_room(context) == Decimal("145.83")
        lines = sequencer.allocate(context.simulation.accounts, Decimal("5000"), context)
        assert [(a.account_id, amount) for a, amount in lines] == [
            ("ira", Decimal("145.83")),
            ("brokerage", Decimal("4854.17")),
        ]

    def test_falls_through_to_roth_then_pre_tax(self, make_account, make_context):
        accounts = [
            make_account("brokerage", AccountType.TAXABLE_BROKERAGE, "1000"),
            make_account("ira", AccountType.TRADITIONAL_IRA, "10000"),
            make_account("roth", AccountType.ROTH_IRA, "1000"),
        ]
        context = make_context(accounts, current_taxable_income=Decimal("1000000"))
        lines = BracketAwareSequencer().allocate(
            context.simulation.accounts, Decimal("3000"), context
        )
        assert [(a.account_id, amount) for a, amount in lines] == [
            ("brokerage", Decimal("1000.00")),
            ("roth", Decimal("1000.00")),
            ("ira", Decimal("1000.00")),
        ]


class TestSequencerRegistry:
    def test_every_sequencer_kind_registered(self):
        for kind in K.sequencer_kinds():
            assert create_sequencer(kind).name

    def test_params_forwarded(self):
        assert create_sequencer(K.Q_CUSTOM, order=["ira"]).order == ["ira"]
