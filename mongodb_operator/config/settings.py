"""
Operator configuration using Pydantic Settings.
Loads configuration from environment variables with validation.
"""
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main operator settings with environment variable loading."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="MongoDB Operator", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: str = Field(default="development", description="Environment (development/staging/production/testing)")
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: Optional[bool] = Field(
        default=None, description="Force JSON (true) or console (false) log output"
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, ge=1, le=65535, description="Server port")

    # Kubernetes
    kubeconfig_path: Optional[str] = Field(
        default=None, description="Path to kubeconfig file (None for default location)"
    )
    k8s_in_cluster: bool = Field(default=False, description="Running inside Kubernetes cluster")
    k8s_request_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Timeout for a single Kubernetes API call"
    )

    # StatefulSet defaults
    default_replicas: int = Field(default=1, ge=1, description="Replica count used when none is requested")
    default_storage_size: str = Field(default="1Gi", description="PVC size used when none is requested")
    last_applied_annotation: str = Field(
        default="mongodb.opstreelabs.in/last-applied",
        description="Annotation holding the last applied StatefulSet snapshot",
    )
    data_mount_path: str = Field(default="/data/db", description="Mount path of the data volume")
    external_config_mount_path: str = Field(
        default="/etc/mongo.d/extra", description="Mount path of the external config volume"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}")
        return v.lower()

    @field_validator("default_storage_size")
    @classmethod
    def validate_default_storage_size(cls, v: str) -> str:
        """Reject an empty default, it would leave PVC sizes unset."""
        if not v.strip():
            raise ValueError("default_storage_size must not be empty")
        return v.strip()

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


# Global settings instance
settings = Settings()
