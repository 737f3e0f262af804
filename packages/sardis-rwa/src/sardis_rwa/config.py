"""Configuration surface for the watch registration workflow."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class EVMConfig(BaseModel):
    """Per-chain entry of the workflow config (`evms[]`)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    luxury_watch_address: str = Field(alias="luxuryWatchAddress")
    consumer_address: str = Field(alias="consumerAddress")
    chain_selector_name: str = Field(alias="chainSelectorName")
    gas_limit: int = Field(alias="gasLimit", gt=0)

    @field_validator("gas_limit", mode="before")
    @classmethod
    def parse_gas_limit(cls, v: Any) -> Any:
        """gasLimit is a decimal string in workflow configs."""
        if isinstance(v, str):
            v = v.strip()
            if not v.isascii() or not v.isdigit():
                raise ValueError("gasLimit must be a decimal integer string")
            return int(v)
        return v


class WorkflowSettings(BaseSettings):
    """Main workflow configuration.

    Loaded from the workflow's JSON config file and/or SARDIS_RWA_* env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="SARDIS_RWA_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    evms: List[EVMConfig] = Field(min_length=1)

    # Ledger execution mode
    chain_mode: Literal["simulated", "live"] = "simulated"
    is_testnet: bool = True

    # Live submission through the forwarder contract
    rpc_url: str = ""
    forwarder_address: str = ""
    transmitter_private_key: str = ""
    receipt_timeout_seconds: float = 120.0

    # Attestation signers; random keys are generated when empty
    attestor_private_keys: List[str] = Field(default_factory=list)
    attestation_quorum: Optional[int] = None

    # External appraisal oracle; reference table is used when empty
    oracle_url: str = ""
    oracle_api_key: str = ""

    @model_validator(mode="after")
    def check_live_mode(self) -> "WorkflowSettings":
        if self.chain_mode == "live":
            missing = [
                name
                for name in ("rpc_url", "forwarder_address", "transmitter_private_key")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"chain_mode=live requires: {', '.join(missing)}")
        return self

    @property
    def primary_evm(self) -> EVMConfig:
        """The workflow targets exactly the first configured chain."""
        return self.evms[0]


def load_settings(path: Union[str, Path], **overrides: Any) -> WorkflowSettings:
    """Load and validate a workflow config file.

    Raises:
        ConfigurationError: File missing, not JSON, or failing validation
    """
    config_path = Path(path)
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {config_path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Config file is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError("Config file must contain a JSON object")

    data.update(overrides)
    try:
        return WorkflowSettings(**data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid workflow config: {e}",
            details={"errors": e.errors(include_url=False)},
        ) from e
