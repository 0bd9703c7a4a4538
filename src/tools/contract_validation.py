import json
from aiortc import RTCSessionDescription
from .errors import MalformedAnswer, MalformedOffer


class BaseType:

    def __init__(self):
        raise Exception("Cannot instantiate")

    @staticmethod
    def validate():
        raise NotImplementedError("Subclasses should implement this!")


class StringType(BaseType):

    @staticmethod
    def validate(value):
        if not isinstance(value, str):
            raise TypeError("Value must be a string.")


class SdpType(BaseType):

    @staticmethod
    def validate(value):
        StringType.validate(value)
        if not value.lstrip().startswith("v="):
            raise TypeError("Value must be an SDP blob starting with 'v='.")


class OneOfType(BaseType):

    def __init__(self, *choices):
        self.choices = choices

    def validate(self, value):
        if value not in self.choices:
            raise TypeError(
                f"Value must be one of: {', '.join(repr(c) for c in self.choices)}."
            )


OFFER_CONTRACT = {
    "sdp": SdpType,
    "type": OneOfType("offer"),
}

ANSWER_CONTRACT = {
    "sdp": SdpType,
    "type": OneOfType("answer"),
}


def validate_contract(contract, data):
    if not isinstance(data, dict):
        raise TypeError("Payload must be a JSON object.")
    for key, value in contract.items():
        if key not in data:
            raise KeyError(f"Missing key: {key}")
        value.validate(data[key])


def validate_contract_with_error_response(contract, data):
    """
    Validate a contract and return an error response if validation fails.

    Args:
        contract: The contract schema to validate against
        data: The data to validate

    Returns:
        tuple: (is_valid: bool, error_response: dict or None)
            - If valid: (True, None)
            - If invalid: (False, error_response_dict with status and error fields)

    Rejections are client mistakes, so they are logged at debug level only.
    """
    from tools.logger import log_debug

    try:
        validate_contract(contract, data)
        return (True, None)
    except KeyError as e:
        log_debug(f"Contract validation error - missing field: {e}")
        return (
            False,
            {
                "status": "error",
                "error": f"Missing required field: {str(e)}",
            },
        )
    except TypeError as e:
        log_debug(f"Contract validation error - type mismatch: {e}")
        return (
            False,
            {
                "status": "error",
                "error": f"Invalid field type: {str(e)}",
            },
        )
    except Exception as e:
        log_debug(f"Contract validation error: {e}")
        return (
            False,
            {
                "status": "error",
                "error": f"Validation error: {str(e)}",
            },
        )


def parse_session_description(raw, expected_type: str) -> RTCSessionDescription:
    """
    Turn a signaling payload into a session description.

    Args:
        raw: JSON text, bytes, or an already decoded dict
        expected_type: "offer" or "answer"

    Returns:
        RTCSessionDescription built from the payload

    Raises:
        MalformedOffer / MalformedAnswer: payload is not {"sdp": str, "type": expected_type}
    """
    error_class = MalformedOffer if expected_type == "offer" else MalformedAnswer
    contract = OFFER_CONTRACT if expected_type == "offer" else ANSWER_CONTRACT

    data = raw
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise error_class(f"Payload is not valid UTF-8: {e}") from e
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise error_class(f"Payload is not valid JSON: {e}") from e

    is_valid, error_response = validate_contract_with_error_response(contract, data)
    if not is_valid:
        raise error_class(error_response["error"])

    return RTCSessionDescription(sdp=data["sdp"], type=data["type"])


def description_to_dict(description: RTCSessionDescription) -> dict:
    """Serialise a session description to its wire form."""
    return {"sdp": description.sdp, "type": description.type}
