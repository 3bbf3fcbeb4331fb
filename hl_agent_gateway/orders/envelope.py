"""
Envelope assembly and one-shot submission to the execution endpoint.
"""

from typing import Any, Dict, Union

from hl_agent_gateway.connectors.base_exchange import BaseVenueConnector
from hl_agent_gateway.orders.encoder import canonical_action
from hl_agent_gateway.orders.models import Signature, SigningContext, TradeAction, VenueResponse
from hl_agent_gateway.utils.exceptions import VenueRejected
from hl_agent_gateway.utils.logger import get_component_logger

logger = get_component_logger("envelope")

UNKNOWN_PRICE = "unknown"


def build_envelope(
    action: Union[TradeAction, Dict[str, Any]],
    context: SigningContext,
    signature: Signature,
) -> Dict[str, Any]:
    """
    Assemble the execution request body.

    The action is re-serialized through the canonical encoder so the JSON the
    venue receives is the same object that was hashed.
    """
    return {
        "action": canonical_action(action),
        "nonce": context.nonce,
        "signature": signature.to_dict(),
        "vaultAddress": context.vault_address,
    }


def submit(envelope: Dict[str, Any], connector: BaseVenueConnector) -> VenueResponse:
    """
    POST the envelope once and interpret the result.

    Raises:
        VenueRejected: HTTP failure, non-"ok" status, or a per-order error
    """
    logger.info(f"Submitting action nonce={envelope['nonce']} vault={envelope['vaultAddress']}")
    raw = connector.post_exchange(envelope)
    return interpret_response(raw)


def interpret_response(raw: Any) -> VenueResponse:
    """Classify a raw execution response; accepted responses are returned, others raise."""
    if not isinstance(raw, dict):
        raise VenueRejected("Exchange returned a non-object response", detail=raw)

    status = raw.get("status")
    if status != "ok":
        message = raw.get("response") if isinstance(raw.get("response"), str) else f"status={status!r}"
        logger.error(f"Order rejected by exchange: {message}")
        raise VenueRejected(f"Order rejected by exchange: {message}", detail=raw)

    response = VenueResponse(status=status, raw=raw)
    errors = [entry["error"] for entry in response.statuses if isinstance(entry, dict) and "error" in entry]
    if errors:
        logger.error(f"Order rejected by exchange: {'; '.join(map(str, errors))}")
        raise VenueRejected(f"Order rejected by exchange: {'; '.join(map(str, errors))}", detail=raw)

    logger.info(f"Exchange accepted order: {response.statuses}")
    return response


def realized_price(response: Union[VenueResponse, Dict[str, Any]]) -> str:
    """Average fill price of the first order, or "unknown" when it rested or was cancelled."""
    if isinstance(response, dict):
        response = VenueResponse(status=str(response.get("status")), raw=response)
    statuses = response.statuses
    if not statuses or not isinstance(statuses[0], dict):
        return UNKNOWN_PRICE
    filled = statuses[0].get("filled")
    if not isinstance(filled, dict) or filled.get("avgPx") in (None, ""):
        return UNKNOWN_PRICE
    return str(filled["avgPx"])
