"""
Account sequencers: where each month's withdrawal comes from.
"""

from .bracket_aware import BracketAwareSequencer
from .custom import CustomSequencer
from .pro_rata import ProRataSequencer
from .rmd_first import RmdFirstSequencer
from .tax_efficient import TAX_PRIORITY, TaxEfficientSequencer

__all__ = [
    "TAX_PRIORITY",
    "TaxEfficientSequencer",
    "RmdFirstSequencer",
    "ProRataSequencer",
    "CustomSequencer",
    "BracketAwareSequencer",
]
