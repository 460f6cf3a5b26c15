from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_core.core_schema import ValidationInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from bufferlink.bootstrap.config.loader import get_configfile
from bufferlink.core.models.buffer import MAX_BUFFER_SIZE


class LibrarySettings(BaseModel):
    path: Annotated[
        Path | None,
        Field(
            description=(
                "Path to the shared library exposing the foreign buffer entry points.\n"
                "When unset, buffers are allocated in process and both sides of the\n"
                "boundary are expected to live in this interpreter."
            ),
            default=None
        )
    ]

    from_bytes_symbol: Annotated[
        str,
        Field(
            description="Symbol of the entry point copying a local byte span into a foreign buffer.",
            default="ffi_bufferlink_rustbuffer_from_bytes"
        )
    ]

    free_symbol: Annotated[
        str,
        Field(
            description="Symbol of the entry point releasing a foreign buffer.",
            default="ffi_bufferlink_rustbuffer_free"
        )
    ]

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: Path | None, _: ValidationInfo) -> Path | None:
        if v is not None and not v.exists():
            raise ValueError(f"Path {v} does not exist.")
        return v


class LimitSettings(BaseModel):
    max_buffer_size: Annotated[
        int,
        Field(
            description=(
                "Largest encoded value, in bytes, that may be lowered into a buffer.\n"
                "Lowering a larger value aborts the transfer. Cannot exceed the\n"
                "signed 32-bit length carried by foreign byte spans."
            ),
            default=MAX_BUFFER_SIZE,
            gt=0,
            le=MAX_BUFFER_SIZE
        )
    ]


class TraceSettings(BaseModel):
    enabled: Annotated[
        bool,
        Field(
            description="Record every buffer-mediated transfer to the trace file.",
            default=False
        )
    ]

    file: Annotated[
        Path,
        Field(
            description="Trace file; records are appended, MsgPack encoded and length framed.",
            default=Path("bufferlink.trace")
        )
    ]


class BufferLinkConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BUFFERLINK_",
        env_nested_delimiter="__",
        extra="ignore"
    )

    library: Annotated[
        LibrarySettings,
        Field(
            description="Foreign library providing buffer allocation and release.",
            default_factory=LibrarySettings
        )
    ]

    limits: Annotated[
        LimitSettings,
        Field(
            description="Size limits applied when lowering values.",
            default_factory=LimitSettings
        )
    ]

    trace: Annotated[
        TraceSettings,
        Field(
            description="Transfer tracing for debugging boundary mismatches.",
            default_factory=TraceSettings
        )
    ]

    log_level: Annotated[
        Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        Field(
            description="Logging verbosity.",
            default="INFO"
        )
    ]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Priority: init kwargs > environment > YAML file
        sources: tuple[PydanticBaseSettingsSource, ...] = (init_settings, env_settings)
        configfile = get_configfile()
        if configfile is not None:
            sources += (YamlConfigSettingsSource(settings_cls, yaml_file=configfile),)
        return sources
