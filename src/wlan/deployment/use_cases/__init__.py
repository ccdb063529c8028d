"""Use cases for network deployment.

Each use case represents a single user action and orchestrates
domain logic without knowing about infrastructure details.
"""

from .deploy_network import ASSIGNMENT_BATCH_SIZE, DeployNetworkUseCase
from .discover_profiles import ProfileDiscoveryUseCase, unique_profiles
from .effective_set import EffectiveSetCalculator
from .reconcile import ReconcileUseCase, classify

__all__ = [
    "ProfileDiscoveryUseCase",
    "unique_profiles",
    "EffectiveSetCalculator",
    "DeployNetworkUseCase",
    "ASSIGNMENT_BATCH_SIZE",
    "ReconcileUseCase",
    "classify",
]
