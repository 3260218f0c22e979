import json
from unittest.mock import MagicMock

import pytest

from lifi_gateway.config import GatewayConfig
from lifi_gateway.core.chains import ChainCache, parse_chain_directory
from lifi_gateway.core.http_client import HttpClient, TokenBucket
from lifi_gateway.core.transactions import TransactionEngine
from lifi_gateway.tools.base import Gateway

WALLET = "0x1111111111111111111111111111111111111111"
OTHER = "0x2222222222222222222222222222222222222222"
TOKEN = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
SPENDER = "0x1231deb6f5749ef6ce6943a275a1d3e7486f4eae"

CHAIN_DIRECTORY = {
    "chains": [
        {
            "id": 1,
            "key": "eth",
            "name": "Ethereum",
            "nativeToken": {"symbol": "ETH", "decimals": 18, "address": "0x0000000000000000000000000000000000000000"},
            "metamask": {
                "chainName": "Ethereum Mainnet",
                "rpcUrls": ["https://eth.rpc.example"],
                "blockExplorerUrls": ["https://etherscan.io/"],
            },
        },
        {
            "id": 137,
            "key": "pol",
            "name": "Polygon",
            "metamask": {
                "chainName": "Matic Mainnet",
                "nativeCurrency": {"symbol": "POL", "decimals": 18},
                "rpcUrls": ["https://polygon.rpc.example"],
            },
        },
        {
            "id": 999,
            "key": "dry",
            "name": "Dry Chain",
            "metamask": {"chainName": "Dry Chain", "rpcUrls": []},
        },
    ]
}


def make_response(status=200, payload=None, headers=None, content=None):
    response = MagicMock()
    response.status_code = status
    response.headers = headers or {}
    if content is None:
        content = json.dumps(payload if payload is not None else {}).encode()
    response.content = content
    return response


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def session():
    session = MagicMock()
    session.request.return_value = make_response(payload={})
    return session


@pytest.fixture
def http_client(session, sleeps):
    # rng of 0.5 cancels the jitter so backoff delays are exact
    return HttpClient(
        session=session,
        limiter=TokenBucket(1000, 1.0, sleep=sleeps.append),
        sleep=sleeps.append,
        rng=lambda: 0.5,
    )


@pytest.fixture
def chain_cache(http_client):
    return ChainCache(http_client, "https://li.quest")


@pytest.fixture
def seeded_cache(chain_cache):
    chain_cache.load(parse_chain_directory(CHAIN_DIRECTORY))
    return chain_cache


@pytest.fixture
def web3():
    web3 = MagicMock()
    web3.eth.chain_id = 1
    web3.eth.get_block.return_value = {"baseFeePerGas": 10}
    web3.eth.max_priority_fee = 2
    web3.eth.gas_price = 5
    web3.eth.estimate_gas.return_value = 100_000
    web3.eth.get_transaction_count.return_value = 7
    web3.eth.send_raw_transaction.return_value = b"\xab" * 32
    return web3


@pytest.fixture
def account():
    account = MagicMock()
    account.address = WALLET
    account.sign_transaction.return_value = MagicMock(raw_transaction=b"signed")
    return account


@pytest.fixture
def web3_factory(web3):
    return MagicMock(return_value=web3)


@pytest.fixture
def engine(account, web3_factory):
    return TransactionEngine(account, web3_factory=web3_factory)


@pytest.fixture
def gateway(http_client, seeded_cache, engine):
    return Gateway(config=GatewayConfig(), http=http_client, chains=seeded_cache, engine=engine)
