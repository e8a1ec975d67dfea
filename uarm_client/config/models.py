"""
Configuration models using Pydantic for validation.

All configuration is loaded from config.json and validated at startup.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator


MESSAGE_KINDS = ("status", "error", "reply")


class SerialConfig(BaseModel):
    """Serial port configuration."""

    port: str = Field(default="", description="Serial port name (e.g., /dev/ttyACM0). Empty for auto-discover.")
    baud: int = Field(default=115200, description="Baud rate")
    read_timeout_seconds: float = Field(
        default=1.0, gt=0, le=30, description="Blocking read timeout of the reader thread"
    )
    auto_discover: bool = Field(
        default=True, description="Pick the first port whose manufacturer matches manufacturer_pattern"
    )
    manufacturer_pattern: str = Field(
        default="Arduino", description="Case-insensitive regex matched against the port manufacturer"
    )


class ProtocolConfig(BaseModel):
    """Wire framing of the uArm protocol."""

    send_prefix: str = Field(default="#", min_length=1, description="Prefix of outgoing command lines")
    markers: Dict[str, str] = Field(
        default_factory=lambda: {"@": "status", "E": "error", "$": "reply", "refer:": "reply"},
        description="Inbound marker -> message kind (status, error, reply)",
    )
    ready_sentinel: str = Field(default="@5 V1", min_length=1, description="Line announcing boot complete")
    ready_timeout_seconds: float = Field(
        default=10.0, gt=0, le=120, description="Maximum wait for the ready sentinel on open"
    )
    reply_timeout_seconds: Optional[float] = Field(
        default=None, gt=0, description="Caller-side bound on waiting for a reply (None waits forever)"
    )

    @field_validator("markers")
    @classmethod
    def validate_markers(cls, v):
        """Every marker is non-empty and maps to a known kind; replies must be possible."""
        if not v:
            raise ValueError("At least one marker is required")
        for marker, kind in v.items():
            if not marker:
                raise ValueError("Markers must not be empty")
            if kind not in MESSAGE_KINDS:
                raise ValueError(f"Invalid kind {kind!r} for marker {marker!r}. Must be one of {list(MESSAGE_KINDS)}")
        if "reply" not in v.values():
            raise ValueError("At least one marker must map to 'reply'")
        return v

    @model_validator(mode="after")
    def validate_sentinel(self):
        """The ready sentinel must be a status line."""
        status_markers = [m for m, kind in self.markers.items() if kind == "status"]
        if not any(self.ready_sentinel.startswith(m) for m in status_markers):
            raise ValueError(
                f"ready_sentinel {self.ready_sentinel!r} must start with a status marker {status_markers}"
            )
        return self


class RobotConfig(BaseModel):
    """Command catalogue defaults."""

    default_speed: int = Field(default=5000, ge=1, le=100000, description="Move speed in mm/min")
    gripper_close_delay_ms: int = Field(
        default=2500, ge=0, le=10000, description="Wait after closing the gripper"
    )
    gripper_open_delay_ms: int = Field(
        default=1400, ge=0, le=10000, description="Wait after opening the gripper"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
    file: Optional[str] = Field(
        default="uarm_client.log",
        description="Log file path (None for console only)"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class SimulatorConfig(BaseModel):
    """Hardware simulator configuration."""

    enabled: bool = Field(default=False, description="Use simulator instead of real hardware")
    device_name: str = Field(default="uArm Swift Pro")
    hardware_version: str = Field(default="3.3.1")
    software_version: str = Field(default="4.5.0")
    api_version: str = Field(default="4.0.3")
    uid: str = Field(default="C0FFEE0042")
    boot_banner: List[str] = Field(
        default_factory=lambda: [
            "Device Name: uArm Swift Pro",
            "Hardware Version: 3.3.1",
            "Firmware Version: 4.5.0",
        ],
        description="Lines printed before the ready sentinel",
    )
    initial_x: float = Field(default=200.0)
    initial_y: float = Field(default=0.0)
    initial_z: float = Field(default=150.0)
    inject_error_code: Optional[int] = Field(
        default=None, ge=0, description="Answer every command with this error code"
    )


class AppConfig(BaseModel):
    """Root configuration model."""

    serial: SerialConfig = Field(default_factory=SerialConfig)
    protocol: ProtocolConfig = Field(default_factory=ProtocolConfig)
    robot: RobotConfig = Field(default_factory=RobotConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    simulator: SimulatorConfig = Field(default_factory=SimulatorConfig)

    class Config:
        """Pydantic config."""
        extra = "forbid"  # Raise error on unknown fields
