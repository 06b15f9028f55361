import pytest

from nftscout.config import ScoutConfig

from tests.fakes import (
    TEST_PRIVATE_KEY,
    FakeCandidateSource,
    FakeCollectionSource,
    FakeGateway,
    FakeSigner,
)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def collection_source() -> FakeCollectionSource:
    return FakeCollectionSource()


@pytest.fixture
def candidate_source() -> FakeCandidateSource:
    return FakeCandidateSource()


@pytest.fixture
def config() -> ScoutConfig:
    return ScoutConfig(
        rpc_url="http://127.0.0.1:8545",
        private_key=TEST_PRIVATE_KEY,
        gas_limit=250_000,
        poll_interval=0.01,
        queue_capacity=4,
    )
