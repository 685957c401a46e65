"""
Strategy registry setup for NestEggLab.
"""

from nestegglab.core.kinds import K
from nestegglab.core.registry import SequencerRegistry, SpendingRegistry

# Sequencers
from .sequencing.bracket_aware import BracketAwareSequencer
from .sequencing.custom import CustomSequencer
from .sequencing.pro_rata import ProRataSequencer
from .sequencing.rmd_first import RmdFirstSequencer
from .sequencing.tax_efficient import TaxEfficientSequencer

# Spending strategies
from .spending.bucket import BucketSpendingStrategy
from .spending.guardrails import GuardrailsSpendingStrategy
from .spending.income_gap import IncomeGapStrategy
from .spending.spending_curve import SpendingCurveStrategy
from .spending.static import StaticSpendingStrategy


def register_defaults():
    """
    Register the built-in strategy and sequencer factories by kind.

    Registered Strategies:
        Spending:
            - 'spending.static': fixed percentage of the initial balance
            - 'spending.income_gap': expenses minus other income
            - 'spending.guardrails': Guyton-Klinger / Vanguard / Kitces
            - 'spending.bucket': time-segmented buckets
            - 'spending.spending_curve': age-based multiplier over a base strategy

        Sequencers:
            - 'sequencer.tax_efficient', 'sequencer.rmd_first',
              'sequencer.pro_rata', 'sequencer.custom', 'sequencer.bracket_aware'

    Note:
        This function is called when ``nestegglab.strategies`` is imported.
        Additional kinds can be registered by writing to the registry
        dictionaries directly.
    """
    SpendingRegistry[K.S_STATIC] = StaticSpendingStrategy
    SpendingRegistry[K.S_INCOME_GAP] = IncomeGapStrategy
    SpendingRegistry[K.S_GUARDRAILS] = GuardrailsSpendingStrategy
    SpendingRegistry[K.S_BUCKET] = BucketSpendingStrategy
    SpendingRegistry[K.S_SPENDING_CURVE] = SpendingCurveStrategy

    SequencerRegistry[K.Q_TAX_EFFICIENT] = TaxEfficientSequencer
    SequencerRegistry[K.Q_RMD_FIRST] = RmdFirstSequencer
    SequencerRegistry[K.Q_PRO_RATA] = ProRataSequencer
    SequencerRegistry[K.Q_CUSTOM] = CustomSequencer
    SequencerRegistry[K.Q_BRACKET_AWARE] = BracketAwareSequencer
