"""Utility functions and types for pyrwm.

This module contains utility functions, type definitions, custom exceptions,
and helper classes used throughout the pyrwm package:

- Type annotations for chains and protocols for kernels and proposals
- Custom exception and warning classes for error handling
- Gaussian weighting densities used by the marginal-likelihood estimators

These utilities support the main sampling and analysis functionality.
"""
