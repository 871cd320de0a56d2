"""Configuration for release publishing.

Key Components:
    - ReleaseSettings: settings container with YAML loading support
    - TargetRepository: one upstream catalog repository

Example:
    >>> from release_publisher.config import ReleaseSettings
    >>> settings = ReleaseSettings.from_yaml("release.yaml")
    >>> [target.label for target in settings.targets]
    ['Kubernetes', 'OpenShift']
"""

from release_publisher.config.settings import ReleaseSettings, TargetRepository

__all__ = ["ReleaseSettings", "TargetRepository"]
