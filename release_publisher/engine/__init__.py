"""Release orchestration.

Key Components:
    - ReleasePipeline: publishes one release to every target repository
"""

from release_publisher.engine.release_pipeline import ReleaseArtifacts, ReleasePipeline

__all__ = ["ReleaseArtifacts", "ReleasePipeline"]
