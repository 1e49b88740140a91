"""Configuration loading and Pydantic models for UploadGate."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Server binding and runtime configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    log_format: str = "text"
    shutdown_timeout: int = 30


class StorageConfig(BaseModel):
    """Object store connection configuration."""

    backend: str = "s3"
    bucket: str = "videos"
    endpoint: str = "localhost:9000"
    access_key: str = ""
    secret_key: str = ""
    region: str = "us-east-1"
    use_ssl: bool = False
    use_path_style: bool = True
    presign_expiry_seconds: int = Field(default=900, gt=0)


class UploadsConfig(BaseModel):
    """Defaults applied to every upload."""

    content_type: str = "video/mp4"
    scan_status: str = "PENDING"


class ObservabilityConfig(BaseModel):
    """Metrics configuration."""

    metrics: bool = True


class UploadGateConfig(BaseModel):
    """Top-level UploadGate configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    uploads: UploadsConfig = Field(default_factory=UploadsConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


def _parse_server(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the server section from YAML data into a dict for Pydantic."""
    if data is None:
        return {}
    return {k: v for k, v in data.items() if k in ServerConfig.model_fields}


def _parse_storage(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the storage section from YAML data.

    Handles nested structure: storage.s3.bucket -> bucket,
    storage.s3.access_key -> access_key, etc.
    """
    if data is None:
        return {}

    result: dict[str, Any] = {"backend": data.get("backend", "s3")}
    if "presign_expiry_seconds" in data:
        result["presign_expiry_seconds"] = data["presign_expiry_seconds"]

    s3_section = data.get("s3")
    if isinstance(s3_section, dict):
        for name in (
            "bucket",
            "endpoint",
            "access_key",
            "secret_key",
            "region",
            "use_ssl",
            "use_path_style",
        ):
            if name in s3_section:
                result[name] = s3_section[name]

    return result


def _parse_uploads(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the uploads section from YAML data."""
    if data is None:
        return {}
    return {
        "content_type": data.get("content_type", "video/mp4"),
        "scan_status": data.get("scan_status", "PENDING"),
    }


def _parse_observability(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the observability section from YAML data."""
    if data is None:
        return {}
    return {"metrics": data.get("metrics", True)}


def load_config(path: Path) -> UploadGateConfig:
    """Load an UploadGateConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated UploadGateConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        pydantic.ValidationError: If a value has the wrong type or range.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    return UploadGateConfig(
        server=ServerConfig(**_parse_server(raw.get("server"))),
        storage=StorageConfig(**_parse_storage(raw.get("storage"))),
        uploads=UploadsConfig(**_parse_uploads(raw.get("uploads"))),
        observability=ObservabilityConfig(**_parse_observability(raw.get("observability"))),
    )
