"""Transaction execution: price, estimate, simulate, sign and broadcast.

:class:`TransactionEngine` runs a caller-supplied :class:`TransactionDescriptor`
(typically the ``transactionRequest`` of a LI.FI quote) through a fixed
pipeline. Every stage before broadcast can abort the call; broadcast is the
only step with an on-chain effect.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import ContractLogicError, Web3Exception

from lifi_gateway.core.context import RequestContext
from lifi_gateway.core.errors import (
    InsufficientBalanceError,
    KeyNotLoadedError,
    SimulationError,
    TransactionError,
    ValidationError,
)
from lifi_gateway.core.tokens import balance_of, encode_approve, encode_transfer
from lifi_gateway.core.utils import extract_revert_reason, get_logger, parse_quantity
from lifi_gateway.core.validation import is_hex_address

LOGGER = get_logger("lifi_gateway.transactions")

NATIVE_TRANSFER_GAS = 21_000
GAS_BUFFER_NUMERATOR = 6  # estimate * 1.2
GAS_BUFFER_DENOMINATOR = 5
RPC_TIMEOUT = 30

Web3Factory = Callable[[str], Web3]
Preflight = Callable[[Web3, "FeeQuote", str], Optional[Dict[str, Any]]]


def default_web3_factory(rpc_url: str) -> Web3:
    return Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": RPC_TIMEOUT}))


def _quantity(request: Mapping[str, Any], key: str) -> Optional[int]:
    try:
        return parse_quantity(request.get(key), field_name=key)
    except ValueError as exc:
        raise ValidationError(key, str(exc)) from exc


@dataclass(frozen=True)
class TransactionDescriptor:
    """An unsigned transaction as described by the caller."""

    to: str
    data: str
    value: int = 0
    gas_price: Optional[int] = None
    gas_limit: Optional[int] = None
    chain_id: Optional[int] = None
    sender: Optional[str] = None

    @classmethod
    def from_request(cls, request: Mapping[str, Any]) -> "TransactionDescriptor":
        """Build a descriptor from a LI.FI ``transactionRequest`` object."""
        to = request.get("to")
        if not isinstance(to, str) or not to:
            raise ValidationError("to", "transaction 'to' address is required in transactionRequest")
        if not is_hex_address(to):
            raise ValidationError("to", f"invalid address format: {to}")
        data = request.get("data")
        if not isinstance(data, str) or not data:
            raise ValidationError("data", "transaction 'data' is required in transactionRequest")
        sender = request.get("from")
        if sender is not None and (not isinstance(sender, str) or not is_hex_address(sender)):
            raise ValidationError("from", f"invalid address format: {sender}")
        return cls(
            to=to,
            data=data,
            value=_quantity(request, "value") or 0,
            gas_price=_quantity(request, "gasPrice"),
            gas_limit=_quantity(request, "gasLimit"),
            chain_id=_quantity(request, "chainId"),
            sender=sender or None,
        )


@dataclass(frozen=True)
class FeeQuote:
    """Resolved fee model: either a legacy gas price or dynamic (EIP-1559) fees."""

    gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None

    @classmethod
    def legacy(cls, gas_price: int) -> "FeeQuote":
        return cls(gas_price=int(gas_price))

    @classmethod
    def dynamic(cls, base_fee: int, priority_fee: int) -> "FeeQuote":
        return cls(max_fee_per_gas=2 * int(base_fee) + int(priority_fee), max_priority_fee_per_gas=int(priority_fee))

    @property
    def is_dynamic(self) -> bool:
        return self.max_fee_per_gas is not None

    @property
    def worst_case_price(self) -> int:
        """Highest per-gas price this transaction could pay."""
        return int(self.max_fee_per_gas if self.is_dynamic else self.gas_price)

    def tx_fields(self) -> Dict[str, int]:
        if self.is_dynamic:
            return {
                "maxFeePerGas": self.max_fee_per_gas,
                "maxPriorityFeePerGas": self.max_priority_fee_per_gas,
            }
        return {"gasPrice": self.gas_price}

    def report_fields(self) -> Dict[str, str]:
        if self.is_dynamic:
            return {
                "transactionType": "eip1559",
                "maxFeePerGas": str(self.max_fee_per_gas),
                "maxPriorityFeePerGas": str(self.max_priority_fee_per_gas),
            }
        return {"transactionType": "legacy", "gasPrice": str(self.gas_price)}


class TransactionEngine:
    """Executes transaction descriptors with the held signing key."""

    def __init__(
        self,
        account: Optional[LocalAccount] = None,
        *,
        web3_factory: Web3Factory = default_web3_factory,
    ) -> None:
        self._account = account
        self._web3_factory = web3_factory

    @property
    def address(self) -> Optional[str]:
        return self._account.address if self._account is not None else None

    def require_account(self) -> LocalAccount:
        if self._account is None:
            raise KeyNotLoadedError()
        return self._account

    def connect(self, rpc_url: str) -> Web3:
        return self._web3_factory(rpc_url)

    def price_gas(self, web3: Web3, explicit_gas_price: Optional[int] = None) -> FeeQuote:
        """Legacy pricing unless the latest block carries a base fee."""
        if explicit_gas_price is not None:
            return FeeQuote.legacy(explicit_gas_price)
        latest = web3.eth.get_block("latest")
        base_fee = latest.get("baseFeePerGas") if latest is not None else None
        if base_fee is not None:
            return FeeQuote.dynamic(base_fee, web3.eth.max_priority_fee)
        return FeeQuote.legacy(web3.eth.gas_price)

    def estimate_gas_limit(self, web3: Web3, call: Dict[str, Any]) -> int:
        """Estimate and add a 20% safety margin."""
        try:
            estimate = int(web3.eth.estimate_gas(call))
        except ContractLogicError as exc:
            raise SimulationError(extract_revert_reason(exc)) from exc
        except (Web3Exception, ValueError) as exc:
            raise TransactionError(f"gas estimation failed: {exc}") from exc
        return estimate * GAS_BUFFER_NUMERATOR // GAS_BUFFER_DENOMINATOR

    def simulate(self, web3: Web3, call: Dict[str, Any]) -> None:
        """Dry-run ``call`` with ``eth_call``; a revert aborts before signing."""
        try:
            web3.eth.call(call)
        except (Web3Exception, ValueError) as exc:
            raise SimulationError(extract_revert_reason(exc)) from exc

    def execute(
        self,
        descriptor: TransactionDescriptor,
        rpc_url: str,
        context: RequestContext,
        *,
        preflight: Optional[Preflight] = None,
    ) -> Dict[str, Any]:
        """Run ``descriptor`` through validate, price, estimate, simulate, sign, broadcast.

        ``preflight`` runs once gas is priced and before estimation; it may
        raise to abort, or return extra fields for the report.
        """
        account = self.require_account()
        address = account.address
        if descriptor.sender and descriptor.sender.lower() != address.lower():
            raise ValidationError(
                "from",
                f"transaction sender {descriptor.sender} does not match loaded wallet {address}",
            )

        context.check()
        web3 = self.connect(rpc_url)
        chain_id = int(web3.eth.chain_id)
        if descriptor.chain_id is not None and descriptor.chain_id != chain_id:
            raise ValidationError(
                "chainId",
                f"transaction targets chain {descriptor.chain_id} but the RPC endpoint reports chain {chain_id}",
            )

        context.check()
        fees = self.price_gas(web3, descriptor.gas_price)
        extra: Dict[str, Any] = {}
        if preflight is not None:
            extra = preflight(web3, fees, address) or {}

        to = Web3.to_checksum_address(descriptor.to)
        call: Dict[str, Any] = {
            "from": address,
            "to": to,
            "value": descriptor.value,
            "data": descriptor.data,
            **fees.tx_fields(),
        }

        context.check()
        gas_limit = descriptor.gas_limit
        if gas_limit is None:
            gas_limit = self.estimate_gas_limit(web3, call)
        call["gas"] = gas_limit

        context.check()
        self.simulate(web3, call)

        context.check()
        nonce = web3.eth.get_transaction_count(address, "pending")
        tx = dict(call)
        tx.pop("from")
        tx.update({"nonce": nonce, "chainId": chain_id})
        signed = account.sign_transaction(tx)

        context.check()
        try:
            tx_hash = web3.eth.send_raw_transaction(signed.raw_transaction)
        except (Web3Exception, ValueError) as exc:
            raise TransactionError(f"failed to broadcast transaction: {exc}") from exc
        tx_hex = Web3.to_hex(tx_hash)
        LOGGER.info("Broadcast %s on chain %s (nonce=%s gas=%s)", tx_hex, chain_id, nonce, gas_limit)

        report: Dict[str, Any] = {
            "transactionHash": tx_hex,
            "from": address,
            "to": to,
            "value": str(descriptor.value),
            "gasLimit": gas_limit,
            "nonce": nonce,
            "chainId": str(chain_id),
            **fees.report_fields(),
        }
        report.update(extra)
        return report

    def approve(
        self,
        token_address: str,
        spender: str,
        amount: int,
        rpc_url: str,
        context: RequestContext,
        *,
        preflight: Optional[Preflight] = None,
    ) -> Dict[str, Any]:
        """ERC-20 ``approve(spender, amount)`` with value 0."""
        descriptor = TransactionDescriptor(
            to=token_address,
            data=encode_approve(Web3(), token_address, spender, amount),
        )
        report = self.execute(descriptor, rpc_url, context, preflight=preflight)
        report.update({"tokenAddress": token_address, "spender": spender, "amount": str(amount)})
        return report

    def transfer_token(
        self,
        token_address: str,
        recipient: str,
        amount: int,
        rpc_url: str,
        context: RequestContext,
        *,
        preflight: Optional[Preflight] = None,
    ) -> Dict[str, Any]:
        """ERC-20 ``transfer``; the sender's balance is checked before simulating."""

        def check_balance(web3: Web3, fees: FeeQuote, address: str) -> Optional[Dict[str, Any]]:
            balance = balance_of(web3, token_address, address)
            if balance < amount:
                raise InsufficientBalanceError(f"insufficient token balance: have {balance}, need {amount}")
            return preflight(web3, fees, address) if preflight is not None else None

        descriptor = TransactionDescriptor(
            to=token_address,
            data=encode_transfer(Web3(), token_address, recipient, amount),
        )
        report = self.execute(descriptor, rpc_url, context, preflight=check_balance)
        report.update({"to": recipient, "tokenAddress": token_address, "amount": str(amount)})
        return report

    def transfer_native(
        self,
        recipient: str,
        amount: int,
        rpc_url: str,
        context: RequestContext,
        *,
        preflight: Optional[Preflight] = None,
    ) -> Dict[str, Any]:
        """Plain value transfer with a fixed 21000 gas limit.

        The balance must cover the amount plus gas at the worst-case price of
        the resolved fee model (the max fee for dynamic pricing).
        """

        def check_balance(web3: Web3, fees: FeeQuote, address: str) -> Optional[Dict[str, Any]]:
            balance = int(web3.eth.get_balance(address))
            gas_cost = NATIVE_TRANSFER_GAS * fees.worst_case_price
            required = amount + gas_cost
            if balance < required:
                raise InsufficientBalanceError(
                    f"insufficient native balance: have {balance}, need {required} "
                    f"(amount {amount} + max gas cost {gas_cost})"
                )
            return preflight(web3, fees, address) if preflight is not None else None

        descriptor = TransactionDescriptor(
            to=recipient,
            data="0x",
            value=amount,
            gas_limit=NATIVE_TRANSFER_GAS,
        )
        report = self.execute(descriptor, rpc_url, context, preflight=check_balance)
        report["amount"] = str(amount)
        return report


__all__ = [
    "FeeQuote",
    "GAS_BUFFER_DENOMINATOR",
    "GAS_BUFFER_NUMERATOR",
    "NATIVE_TRANSFER_GAS",
    "TransactionDescriptor",
    "TransactionEngine",
    "default_web3_factory",
]
