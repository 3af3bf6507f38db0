import pytest

from abi_autoload.config import DEFAULT_SOURCIFY_URL, load_config, resolve_chain_id

ENV_VARS = [
    "RPC_URL",
    "NETWORK",
    "CHAIN_ID",
    "ETHERSCAN_API_KEY",
    "SOURCIFY_URL",
    "REQUEST_TIMEOUT",
    "REQUEST_RETRIES",
    "REQUEST_BACKOFF_SECONDS",
    "ENABLE_EXPERIMENTAL_METADATA",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_rpc_url_required():
    with pytest.raises(ValueError, match="RPC_URL"):
        load_config()


def test_defaults(monkeypatch):
    monkeypatch.setenv("RPC_URL", "https://rpc.test")
    config = load_config()
    assert config.chain_id == "1"
    assert config.etherscan_api_key is None
    assert config.sourcify_url == DEFAULT_SOURCIFY_URL
    assert config.max_retries == 1
    assert config.enable_experimental_metadata is False


def test_overrides(monkeypatch):
    monkeypatch.setenv("RPC_URL", "https://rpc.test")
    monkeypatch.setenv("NETWORK", "Sepolia")
    monkeypatch.setenv("ETHERSCAN_API_KEY", " KEY ")
    monkeypatch.setenv("SOURCIFY_URL", "https://sourcify.test/server/")
    monkeypatch.setenv("REQUEST_RETRIES", "3")
    monkeypatch.setenv("ENABLE_EXPERIMENTAL_METADATA", "yes")
    config = load_config()
    assert config.network == "sepolia"
    assert config.chain_id == "11155111"
    assert config.etherscan_api_key == "KEY"
    assert config.sourcify_url == "https://sourcify.test/server"
    assert config.max_retries == 3
    assert config.enable_experimental_metadata is True


def test_chain_id_override(monkeypatch):
    monkeypatch.setenv("RPC_URL", "https://rpc.test")
    monkeypatch.setenv("NETWORK", "somewhere")
    monkeypatch.setenv("CHAIN_ID", "8453")
    assert load_config().chain_id == "8453"


@pytest.mark.parametrize(
    "name,value",
    [
        ("REQUEST_TIMEOUT", "soon"),
        ("REQUEST_RETRIES", "0"),
        ("REQUEST_BACKOFF_SECONDS", "fast"),
        ("ENABLE_EXPERIMENTAL_METADATA", "maybe"),
        ("NETWORK", "atlantis"),
    ],
)
def test_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv("RPC_URL", "https://rpc.test")
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        load_config()


def test_resolve_chain_id():
    assert resolve_chain_id("mainnet") == "1"
    assert resolve_chain_id("137") == "137"
    assert resolve_chain_id("anything", "10") == "10"
