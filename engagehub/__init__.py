"""
engagehub - Employee Engagement Platform Data Adapters

Feature-flag gated adapters over the employee, recognition and social
data of an engagement platform, with per-operation metrics, health
reporting and organization-level staged rollout.

Example:
    >>> from engagehub.adapters import create_adapter_factory
    >>> from engagehub.services import FeatureFlagService

    >>> flags = FeatureFlagService(sessionmaker)
    >>> factory = create_adapter_factory(sessionmaker, flags)
    >>> adapter = await factory.get_employee_adapter(context)
"""

__version__ = "0.1.0"
