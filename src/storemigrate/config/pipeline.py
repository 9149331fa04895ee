"""Batching defaults for import services."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_int

DEFAULT_IMPORT_CHUNK_SIZE = 50
DEFAULT_STRUCTURE_CHUNK_SIZE = 50


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    import_chunk_size: int = DEFAULT_IMPORT_CHUNK_SIZE
    structure_chunk_size: int = DEFAULT_STRUCTURE_CHUNK_SIZE


def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        import_chunk_size=optional_env_int(
            "STOREMIGRATE_IMPORT_CHUNK_SIZE", DEFAULT_IMPORT_CHUNK_SIZE
        ),
        structure_chunk_size=optional_env_int(
            "STOREMIGRATE_STRUCTURE_CHUNK_SIZE", DEFAULT_STRUCTURE_CHUNK_SIZE
        ),
    )
