"""Global test fixtures."""

import pytest

from eacchain.config import NormalizationConfig
from eacchain.domain.chain.service.registry import ChainRegistry
from eacchain.domain.record.service.graph_builder import RecordGraphBuilder
from eacchain.domain.record.service.normalizer import RecordNormalizer
from eacchain.infrastructure.local.content_store import LocalContentStore
from eacchain.infrastructure.local.name_service import LocalNameService


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's EAC_CONFIG_FILE / EAC_LOG_FILE out of the tests."""
    monkeypatch.delenv("EAC_CONFIG_FILE", raising=False)
    monkeypatch.delenv("EAC_LOG_FILE", raising=False)


@pytest.fixture
def store(tmp_path) -> LocalContentStore:
    return LocalContentStore(tmp_path / "store")


@pytest.fixture
def names(tmp_path) -> LocalNameService:
    return LocalNameService(tmp_path / "store")


@pytest.fixture
def normalization() -> NormalizationConfig:
    return NormalizationConfig()


@pytest.fixture
def builder(store: LocalContentStore, normalization: NormalizationConfig) -> RecordGraphBuilder:
    return RecordGraphBuilder(
        store=store,
        normalizer=RecordNormalizer(),
        order_spec=normalization.order_spec(),
        attestation_spec=normalization.attestation_spec(),
    )


@pytest.fixture
def registry(store: LocalContentStore, names: LocalNameService) -> ChainRegistry:
    return ChainRegistry(store=store, names=names)


@pytest.fixture
def contract_rows() -> list[dict]:
    """Two contracts as read from a step2 CSV; C2 has no demands."""
    return [
        {
            "contract_id": "C1",
            "volume_MWh": "1,250.5",
            "contractDate": "2021-06-01",
            "step9_transaction_complete": "TRUE",
        },
        {
            "contract_id": "C2",
            "volume_MWh": " 300 ",
            "contractDate": "06/15/2021",
            "step9_transaction_complete": None,
        },
        {"contract_id": None, "volume_MWh": None, "contractDate": None},  # trailing blank line
    ]


@pytest.fixture
def demand_rows() -> list[dict]:
    return [
        {"allocation_id": "A1", "contract_id": "C1", "minerID": "f01234", "volume_MWh": "1,000"},
        {"allocation_id": "A2", "contract_id": "C1", "minerID": "f05678", "volume_MWh": "250.5"},
    ]


@pytest.fixture
def certificate_rows() -> list[dict]:
    return [
        {"certificate": "CERT-1", "attestation_file": "attestation.pdf", "volume_MWh": "10"},
        {"certificate": "CERT-2", "attestation_file": "attestation.pdf", "volume_MWh": "5"},
        {"certificate": "CERT-3", "attestation_file": "other.pdf", "volume_MWh": "1"},
    ]


@pytest.fixture
def supply_rows() -> list[dict]:
    return [
        {"generation_id": "G1", "certificate": "CERT-1", "volume_Wh": "10000000"},
        {"generation_id": "G2", "certificate": "CERT-2", "volume_Wh": "5000000"},
    ]
