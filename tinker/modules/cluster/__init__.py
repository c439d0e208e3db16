"""
Cluster Module - Black Box Interface

Purpose: Discover role pods and mutate them
Interface: PodLocator.list_pods(), set_debug_annotation(), clear_debug_annotation(),
           delete_pod(), build_core_api()
Hidden: Kubernetes API calls, label selectors, patch format

Every call re-reads the cluster; nothing is cached.
"""

from .client import build_core_api
from .locator import DEBUG_ANNOTATION, DEBUG_VALUE, PodLocator

__all__ = ["build_core_api", "DEBUG_ANNOTATION", "DEBUG_VALUE", "PodLocator"]
