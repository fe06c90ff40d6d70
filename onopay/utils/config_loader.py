"""
Configuration loader for the Onopay gateway client
"""

import os
import yaml
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError
import logging

from onopay.integrations.contracts.interfaces import GatewayAction, PaymentMethod

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "gateway_config.yml"

# env var -> dotted config key
ENV_OVERRIDES: Dict[str, str] = {
    "ONOPAY_MERCHANT_ID": "merchant_id",
    "ONOPAY_API_KEY": "api_key",
    "ONOPAY_SALT_KEY_REQUEST": "salt_key_request",
    "ONOPAY_SALT_KEY_RESPONSE": "salt_key_response",
    "ONOPAY_GST_NUMBER": "gst_number",
    "ONOPAY_PAN_NUMBER": "pan_number",
    "ONOPAY_GST_ENABLED": "gst_enabled",
    "ONOPAY_MAX_RETRIES": "max_retries",
    "ONOPAY_RETRY_DELAY": "retry_delay",
    "ONOPAY_TIMEOUT": "timeout",
    "ONOPAY_DEBUG_MODE": "debug_mode",
    "ONOPAY_BASE_URL": "endpoints.base_url",
}


class GatewayEndpoints(BaseModel):
    """Static endpoint mapping, one URL per gateway action"""

    base_url: str = "https://api.onopay.in"
    payment_initiate: str = "/payment/initiate"
    payment_status: str = "/payment/status"
    refund: str = "/payment/refund"
    upi_collect: str = "/upi/collect"
    mandate_create: str = "/mandate/create"
    webhook: str = "/webhook"

    def url_for(self, action: GatewayAction) -> str:
        path = getattr(self, action.value)
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"


class GatewayConfig(BaseModel):
    """Merchant credentials, compliance identifiers and transport tuning"""

    merchant_id: str
    api_key: str = Field(repr=False)
    # Request and response secrets are separate slots and must never be swapped.
    salt_key_request: str = Field(repr=False)
    salt_key_response: str = Field(repr=False)
    endpoints: GatewayEndpoints = Field(default_factory=lambda: GatewayEndpoints())
    currency: str = "INR"
    country: str = "IN"
    gst_enabled: bool = True
    gst_number: Optional[str] = None
    pan_number: Optional[str] = None
    tds_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    supported_payment_methods: List[str] = Field(default_factory=lambda: [m.value for m in PaymentMethod])
    high_value_threshold: Decimal = Field(default=Decimal("200000"), gt=0)
    upi_transaction_limit: Decimal = Field(default=Decimal("100000"), gt=0)
    upi_expiry_minutes: int = Field(default=10, ge=1, le=60)
    max_retries: int = Field(default=3, ge=0, le=10)
    retry_delay: float = Field(default=2.0, ge=0.0)
    timeout: float = Field(default=30.0, gt=0.0)
    debug_mode: bool = False


def _apply_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
    for env_name, dotted_key in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is None or value == "":
            continue
        target = config_data
        *parents, leaf = dotted_key.split(".")
        for parent in parents:
            target = target.setdefault(parent, {})
        target[leaf] = value
    return config_data


def load_gateway_config(config_path: Optional[Path] = None) -> GatewayConfig:
    """
    Load and validate gateway configuration from YAML file

    Environment variables (see ENV_OVERRIDES, also read from a .env file)
    take precedence over values in the file, so secrets never need to live
    in the YAML.

    Args:
        config_path: Path to config file. Defaults to config/gateway_config.yml

    Returns:
        Validated GatewayConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config doesn't match schema
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(os.getenv("ONOPAY_CONFIG_PATH", DEFAULT_CONFIG_PATH))

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f) or {}

    config_data = _apply_env_overrides(config_data.get("onopay", config_data))

    try:
        config = GatewayConfig(**config_data)
        logger.info(f"Successfully loaded gateway config from {config_path}")
        return config
    except ValidationError as e:
        logger.error(f"Gateway config validation failed: {e}")
        raise
