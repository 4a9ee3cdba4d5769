# optimize_layout.py
"""
Constrained element-to-key layout optimization using simulated annealing.

Elements (components or coded sub-units of a typing scheme) are moved between
keys by constraint-aware mutations; the temperature range is estimated from
trial runs before a geometric cooling schedule. Better layouts are saved to
output/ as a scheme yaml file and a metric report.

Usage: python optimize_layout.py [--config config.yaml] {evaluate,optimize}
"""
import sys

from layout_optimizer.cli import main

#--------------------------------------------------------------------
# Pipeline
#--------------------------------------------------------------------
if __name__ == "__main__":
    sys.exit(main())
