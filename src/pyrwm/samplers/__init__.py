"""Sampling algorithms for pyrwm.

This module provides the random-walk Metropolis sampler:

- Proposal kernels: Gaussian or Student-t innovations, for the whole
  parameter vector or cycling over blocks of it
- The Metropolis sampler with bounds checking, burn-in and thinning
- A post-hoc acceptance-rate diagnostic
"""

from .metropolis import (
    MetropolisChain,
    MetropolisSampler,
    SamplerConfig,
    acceptance_rate,
    run_random_walk_metropolis,
)
from .proposals import BlockProposalKernel, ProposalKernel

__all__ = [
    "BlockProposalKernel",
    "MetropolisChain",
    "MetropolisSampler",
    "ProposalKernel",
    "SamplerConfig",
    "acceptance_rate",
    "run_random_walk_metropolis",
]
