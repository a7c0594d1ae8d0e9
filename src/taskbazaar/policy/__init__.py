"""Marketplace policy loading."""

from taskbazaar.policy.resolver import PolicyResolver, SeedAccount, SeedTask

__all__ = ["PolicyResolver", "SeedAccount", "SeedTask"]
