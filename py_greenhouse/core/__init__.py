"""
Core planning functionality.
"""

from .grid import (GRID_SIZE, CellNotUnlockable, footprint_cells, is_adjacent,
                   pixel_position, default_unlocked_cells, expandable_cells, locked_cells)
from .metrics import (PotentialMetric, CellCountMetric, SpawnSiteMetric, MetricCache,
                      UnknownMetric, get_metric, available_metrics)
from .expansion import (optimize_expansion, check_expansion_inputs, ExpansionPlan, ExpansionStep,
                        ExpansionError, EmptyCandidateSet, EmptyUnlockedSet)
from .placement import (Placement, PlacementErrorKind, ValidationResult,
                        validate_placement, DragSession)

__all__ = ['GRID_SIZE', 'CellNotUnlockable', 'footprint_cells', 'is_adjacent',
           'pixel_position', 'default_unlocked_cells', 'expandable_cells', 'locked_cells',
           'PotentialMetric', 'CellCountMetric', 'SpawnSiteMetric', 'MetricCache',
           'UnknownMetric', 'get_metric', 'available_metrics',
           'optimize_expansion', 'check_expansion_inputs', 'ExpansionPlan', 'ExpansionStep',
           'ExpansionError', 'EmptyCandidateSet', 'EmptyUnlockedSet',
           'Placement', 'PlacementErrorKind', 'ValidationResult',
           'validate_placement', 'DragSession']
