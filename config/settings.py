"""Server configuration for the decision record service.

Values come from environment variables with sensible defaults. Raw strings
are handed to pydantic, which coerces and validates them.
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ServerConfig(BaseModel):
    """Runtime configuration."""
    base_dir: Path = Field(default=Path('.'), description="Directory holding the record files")
    extension: str = Field(default='.yaml', description="File name suffix that marks a record")
    strict_load: bool = Field(default=False, description="Abort startup on the first bad record")

    host: str = Field(default='0.0.0.0', description="Bind address")
    port: int = Field(default=8090, description="Bind port")
    keep_alive_timeout: int = Field(default=5, description="Idle connection timeout in seconds")
    shutdown_timeout: int = Field(default=5, description="Graceful shutdown deadline in seconds")

    fuzziness: int = Field(default=1, description="Maximum edit distance per query term")
    prefix_length: int = Field(default=0, description="Leading characters that must match exactly")
    snippet_tokens: int = Field(default=32, description="Tokens per highlight fragment")

    log_level: str = Field(default='INFO', description="Root log level")
    log_json: bool = Field(default=False, description="Emit JSON logs on the console")
    log_file: Optional[str] = Field(default=None, description="Optional JSON log file")

    @field_validator('extension')
    @classmethod
    def _dotted_extension(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("extension cannot be empty")
        return value if value.startswith('.') else f'.{value}'

    @field_validator('port')
    @classmethod
    def _valid_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("port must be between 1 and 65535")
        return value

    @field_validator('fuzziness')
    @classmethod
    def _valid_fuzziness(cls, value: int) -> int:
        if not 0 <= value <= 2:
            raise ValueError("fuzziness must be between 0 and 2")
        return value

    @field_validator('prefix_length', 'keep_alive_timeout', 'shutdown_timeout')
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("value must not be negative")
        return value

    @field_validator('snippet_tokens')
    @classmethod
    def _snippet_range(cls, value: int) -> int:
        # FTS5 snippet() caps fragments at 64 tokens
        if not 1 <= value <= 64:
            raise ValueError("snippet_tokens must be between 1 and 64")
        return value

    @field_validator('log_level')
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @classmethod
    def from_env(cls) -> 'ServerConfig':
        """Create configuration from environment variables.

        Raises:
            pydantic.ValidationError: If a variable does not coerce to its field type
        """
        return cls(
            base_dir=os.getenv('DECISIONDOCS_BASE_DIR', '.'),
            extension=os.getenv('DECISIONDOCS_EXTENSION', '.yaml'),
            strict_load=os.getenv('DECISIONDOCS_STRICT_LOAD', 'false'),
            host=os.getenv('DECISIONDOCS_HOST', '0.0.0.0'),
            port=os.getenv('DECISIONDOCS_PORT', '8090'),
            keep_alive_timeout=os.getenv('DECISIONDOCS_KEEP_ALIVE_TIMEOUT', '5'),
            shutdown_timeout=os.getenv('DECISIONDOCS_SHUTDOWN_TIMEOUT', '5'),
            fuzziness=os.getenv('DECISIONDOCS_FUZZINESS', '1'),
            prefix_length=os.getenv('DECISIONDOCS_PREFIX_LENGTH', '0'),
            snippet_tokens=os.getenv('DECISIONDOCS_SNIPPET_TOKENS', '32'),
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
            log_json=os.getenv('LOG_JSON', 'false'),
            log_file=os.getenv('LOG_FILE') or None
        )
