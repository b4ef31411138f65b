import logging
import os
import sys
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from eacchain.domain.ingest.model.value import (
    BatchPolicy,
    ChainNames,
    FileConvention,
    GroupErrorPolicy,
)
from eacchain.domain.record.model.rules import (
    ChildDefault,
    HierarchySpec,
    NormalizationRules,
    RenameRule,
)

# =============================================================================
# IPFS / Chain Configuration
# =============================================================================


class IpfsConfig(BaseModel):
    api_url: str = "http://127.0.0.1:5001"  # Kubo RPC endpoint
    store_codec: str = "dag-cbor"
    hash_alg: str = "sha2-256"
    cid_version: int = 1
    pin: bool = True
    timeout: float = 30.0  # seconds per RPC call
    resolve_timeout: str = "30s"  # name/resolve dht-timeout


class ChainConfig(BaseModel):
    lifetime: str = "87600h"  # pointer validity (ten years)
    key_type: str = "ed25519"
    transactions: str = "transactions"
    deliveries: str = "deliveries"
    directory: str = "chains"

    def names(self) -> ChainNames:
        return ChainNames(
            transactions=self.transactions,
            deliveries=self.deliveries,
            directory=self.directory,
        )


class StoreConfig(BaseModel):
    backend: Literal["ipfs", "local"] = "ipfs"
    root: str = "~/.local/share/eacchain"  # local blocks and keystore (XDG data directory)

    @property
    def path(self) -> Path:
        return Path(self.root).expanduser()


# =============================================================================
# Source Configuration
# =============================================================================


class SourceConfig(BaseModel):
    backend: Literal["github", "directory"] = "github"
    owner: str = "redransil"
    repo: str = "filecoin-renewables-purchases"
    branch: str = "main"
    token: str | None = None  # GitHub personal access token (required for write-back)
    api_url: str = "https://api.github.com"
    raw_url: str = "https://raw.githubusercontent.com"
    root: str | None = None  # directory backend
    timeout: float = 30.0

    # File naming conventions inside group folders
    contracts_suffix: str = "_step2_orderSupply.csv"
    demands_suffix: str = "_step3_match.csv"
    certificates_suffix: str = "_step5_redemption_data.csv"
    supplies_suffix: str = "_step6_generationRecords.csv"

    def transaction_files(self) -> FileConvention:
        return FileConvention(parent_suffix=self.contracts_suffix, child_suffix=self.demands_suffix)

    def attestation_files(self) -> FileConvention:
        return FileConvention(
            parent_suffix=self.certificates_suffix, child_suffix=self.supplies_suffix
        )


# =============================================================================
# Batch / Normalization Configuration
# =============================================================================


class BatchConfig(BaseModel):
    on_group_error: GroupErrorPolicy = GroupErrorPolicy.SKIP
    partial_aggregate: bool = True  # append aggregates of the groups that succeeded
    retry_attempts: int = 2  # chain append retries on TransportError
    retry_backoff: float = 1.0  # seconds between retries
    write_back: bool = False  # write order cids back into the contracts tables
    write_back_column: str = "order_cid"

    def policy(self) -> BatchPolicy:
        return BatchPolicy(**self.model_dump())


class RenameConfig(BaseModel):
    name: str
    source: str
    target: str


# Document-local progress flags and write-back columns
DEFAULT_REDACT = [
    "order_cid",
    "step2_order_complete",
    "step3_match_complete",
    "step4_ZL_contract_complete",
    "step5_redemption_data_complete",
    "step6_attestation_info_complete",
    "step7_certificates_matched_to_supply",
    "step8_IPLDrecord_complete",
    "step9_transaction_complete",
    "step10_volta_complete",
    "step11_finalRecord_complete",
]
DEFAULT_NUMERIC = ["volume_MWh", "volume_Wh", "volume_filecoin_MWh"]
DEFAULT_DATES = [
    "contractDate",
    "deliveryDate",
    "reportingStart",
    "reportingEnd",
    "generationStart",
    "generationEnd",
]


class NormalizationConfig(BaseModel):
    redact: list[str] = DEFAULT_REDACT
    numeric: list[str] = DEFAULT_NUMERIC
    dates: list[str] = DEFAULT_DATES
    renames: list[RenameConfig] = [
        RenameConfig(name="legacy-tranche-id", source="tranche_id", target="contract_id")
    ]

    # Table keys
    contract_key: str = "contract_id"
    allocation_key: str = "allocation_id"
    certificate_key: str = "certificate"
    supply_key: str = "generation_id"
    attachment_field: str = "attestation_file"

    def rules(self, key_field: str) -> NormalizationRules:
        return NormalizationRules(
            key_field=key_field,
            redact=frozenset(self.redact),
            numeric=frozenset(self.numeric),
            dates=frozenset(self.dates),
            renames=tuple(RenameRule(**r.model_dump()) for r in self.renames),
        )

    def order_spec(self) -> HierarchySpec:
        """Contracts -> demands; contracts without demands get an empty LinkSet."""
        return HierarchySpec(
            parent_kind="contract",
            child_kind="demand",
            parent_key=self.contract_key,
            child_parent_key=self.contract_key,
            child_key=self.allocation_key,
            children_field="demands",
            missing_children=ChildDefault.EMPTY,
            parent_rules=self.rules(self.contract_key),
            child_rules=self.rules(self.allocation_key),
        )

    def attestation_spec(self) -> HierarchySpec:
        """Certificates -> supplies; certificates without supplies get null."""
        return HierarchySpec(
            parent_kind="certificate",
            child_kind="supply",
            parent_key=self.certificate_key,
            child_parent_key=self.certificate_key,
            child_key=self.supply_key,
            children_field="supplies",
            missing_children=ChildDefault.NULL,
            parent_rules=self.rules(self.certificate_key),
            child_rules=self.rules(self.supply_key),
            attachment_field=self.attachment_field,
            attachment_link_field="attestation_document",
        )


# =============================================================================
# Application Configuration
# =============================================================================


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Load settings from YAML file specified by EAC_CONFIG_FILE env var."""

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        yaml_data = self._load_yaml_config()
        field_value = yaml_data.get(field_name)
        return field_value, field_name, False

    def __call__(self) -> dict[str, Any]:
        return self._load_yaml_config()

    def _load_yaml_config(self) -> dict[str, Any]:
        config_file = os.environ.get("EAC_CONFIG_FILE")
        if config_file:
            path = Path(config_file)
            if path.exists():
                return yaml.safe_load(path.read_text()) or {}
        return {}


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @property
    def file(self) -> str | None:
        """Get log file path from EAC_LOG_FILE env var."""
        return os.environ.get("EAC_LOG_FILE")


class Config(BaseSettings):
    ipfs: IpfsConfig = IpfsConfig()
    chain: ChainConfig = ChainConfig()
    store: StoreConfig = StoreConfig()
    source: SourceConfig = SourceConfig()
    batch: BatchConfig = BatchConfig()
    normalization: NormalizationConfig = NormalizationConfig()
    logging: LoggingConfig = LoggingConfig()

    class Config:
        env_prefix = "EAC_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_nested_delimiter = "__"  # Allows EAC_IPFS__API_URL override

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to include YAML config.

        Priority (highest to lowest):
        1. init_settings - values passed to Config()
        2. env_settings - environment variables
        3. dotenv_settings - .env file
        4. yaml_settings - EAC_CONFIG_FILE yaml
        5. file_secret_settings - secrets from files
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def configure_logging(config: LoggingConfig) -> None:
    """Configure Python logging based on config.

    Should be called early in startup so all module loggers pick up the
    configuration.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(config.format, datefmt=config.date_format)

    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(config.level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(config.level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.debug("Logging configured: level=%s, file=%s", config.level, config.file)
