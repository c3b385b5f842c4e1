"""
C. elegans Neural Activity Analysis

A Python package for relating whole-brain calcium-imaging traces to
locomotion behaviour in C. elegans recordings.
This package provides tools for:
- Loading and cleaning tabular recordings (CSV / Excel)
- Deriving velocity features from worm positions
- Neuron-behaviour correlations with bootstrap significance
- Representational similarity analysis (RDM / RSA)
- Behaviour decoding with a linear SVM
- Static plots and trajectory animations
"""

__version__ = '0.1.0'
