"""Base class for modules applied to a SecurityPipelineBuilder."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from warden.core.pipeline.builder import SecurityPipelineBuilder


class SecurityConfigurator:
    """Two-phase participant in a pipeline build.

    ``on_apply`` runs when the configurator is added to the builder, ``init``
    runs for every configurator before any ``configure``, and ``configure``
    runs once the authentication dispatcher exists.
    """

    def on_apply(self, builder: SecurityPipelineBuilder) -> None:
        pass

    def init(self, builder: SecurityPipelineBuilder) -> None:
        pass

    def configure(self, builder: SecurityPipelineBuilder) -> None:
        pass


__all__ = ["SecurityConfigurator"]
