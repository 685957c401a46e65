"""
NestEggLab Kind Constants (behavior-centric, extensible).
"""


class K:
    # === Spending strategies (how much to withdraw) ===
    S_STATIC = "spending.static"  # fixed % of initial balance, inflation-indexed
    S_INCOME_GAP = "spending.income_gap"  # expenses minus other income
    S_GUARDRAILS = "spending.guardrails"  # Guyton-Klinger / Vanguard / Kitces
    S_BUCKET = "spending.bucket"  # time-segmented buckets
    S_SPENDING_CURVE = "spending.spending_curve"  # go-go / slow-go / no-go

    # === Account sequencers (where to withdraw from) ===
    Q_TAX_EFFICIENT = "sequencer.tax_efficient"
    Q_RMD_FIRST = "sequencer.rmd_first"
    Q_PRO_RATA = "sequencer.pro_rata"
    Q_CUSTOM = "sequencer.custom"
    Q_BRACKET_AWARE = "sequencer.bracket_aware"

    # === Orchestrators (strategy + sequencer + RMD policy) ===
    O_DEFAULT = "orchestrator.default"
    O_RMD_AWARE = "orchestrator.rmd_aware"

    @classmethod
    def spending_kinds(cls) -> list[str]:
        return [
            cls.S_STATIC,
            cls.S_INCOME_GAP,
            cls.S_GUARDRAILS,
            cls.S_BUCKET,
            cls.S_SPENDING_CURVE,
        ]

    @classmethod
    def sequencer_kinds(cls) -> list[str]:
        return [
            cls.Q_TAX_EFFICIENT,
            cls.Q_RMD_FIRST,
            cls.Q_PRO_RATA,
            cls.Q_CUSTOM,
            cls.Q_BRACKET_AWARE,
        ]

    @classmethod
    def all_kinds(cls) -> list[str]:
        """Enumerate all known kinds (for validation and docs)."""
        return (
            cls.spending_kinds()
            + cls.sequencer_kinds()
            + [cls.O_DEFAULT, cls.O_RMD_AWARE]
        )
