"""Security settings for a wireless network.

Each security mode is its own frozen dataclass carrying exactly the
configuration that mode needs. A ``SecuritySettings`` value is one of:

    OpenSecurity | OweSecurity | WepSecurity | PskSecurity
    | SaeSecurity | EnterpriseSecurity

Every variant exposes ``.mode`` (a SecurityMode) and validates itself on
construction, raising the domain ValidationError for malformed values.
"""

import string
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from .exceptions import ValidationError


class SecurityMode(str, Enum):
    """Security modes supported by the controller."""

    OPEN = "open"
    OWE = "owe"
    WEP = "wep"
    WPA2_PSK = "wpa2-psk"
    WPA3_COMPATIBILITY = "wpa3-compatibility"
    WPA3_PERSONAL = "wpa3-personal"
    WPA2_ENTERPRISE = "wpa2-enterprise"
    WPA3_ENTERPRISE_TRANSITION = "wpa3-enterprise-transition"
    WPA3_ENTERPRISE_192 = "wpa3-enterprise-192"

    @property
    def is_enterprise(self) -> bool:
        return self in ENTERPRISE_MODES


ENTERPRISE_MODES = frozenset({
    SecurityMode.WPA2_ENTERPRISE,
    SecurityMode.WPA3_ENTERPRISE_TRANSITION,
    SecurityMode.WPA3_ENTERPRISE_192,
})

PSK_MODES = frozenset({SecurityMode.WPA2_PSK, SecurityMode.WPA3_COMPATIBILITY})

ENCRYPTION_MODES = frozenset({"aesOnly", "tkipOnly", "both"})
PMF_MODES = frozenset({"disabled", "optional", "required"})
SAE_METHODS = frozenset({"sae", "h2e", "both"})

# Key lengths per WEP size, as (ascii chars, hex digits)
WEP_KEY_CHARS = {64: (5, 10), 128: (13, 26)}

MAX_RADIUS_SERVERS = 4


def _is_hex(value: str) -> bool:
    return bool(value) and all(c in string.hexdigits for c in value)


def _check_passphrase(passphrase: str, hex_encoded: bool) -> None:
    if hex_encoded:
        if len(passphrase) != 64 or not _is_hex(passphrase):
            raise ValidationError("Hex-encoded passphrase must be exactly 64 hex digits")
    elif not 8 <= len(passphrase) <= 63:
        raise ValidationError("Passphrase must be between 8 and 63 characters")


def _check_choice(name: str, value: str, allowed: frozenset) -> None:
    if value not in allowed:
        raise ValidationError(
            f"Invalid {name} '{value}', expected one of: {', '.join(sorted(allowed))}"
        )


@dataclass(frozen=True)
class OpenSecurity:
    """Unencrypted network."""

    @property
    def mode(self) -> SecurityMode:
        return SecurityMode.OPEN


@dataclass(frozen=True)
class OweSecurity:
    """Opportunistic Wireless Encryption (enhanced open)."""

    @property
    def mode(self) -> SecurityMode:
        return SecurityMode.OWE


@dataclass(frozen=True)
class WepSecurity:
    """Legacy WEP static key."""

    key: str
    key_length: int = 128
    input_method: str = "ascii"
    key_index: int = 1

    def __post_init__(self):
        if self.key_length not in WEP_KEY_CHARS:
            raise ValidationError(f"WEP key length must be 64 or 128, got {self.key_length}")
        _check_choice("WEP input method", self.input_method, frozenset({"ascii", "hex"}))
        if not 1 <= self.key_index <= 4:
            raise ValidationError(f"WEP key index must be 1-4, got {self.key_index}")

        ascii_chars, hex_digits = WEP_KEY_CHARS[self.key_length]
        if self.input_method == "hex":
            if len(self.key) != hex_digits or not _is_hex(self.key):
                raise ValidationError(
                    f"{self.key_length}-bit WEP hex key must be {hex_digits} hex digits"
                )
        elif len(self.key) != ascii_chars:
            raise ValidationError(
                f"{self.key_length}-bit WEP ASCII key must be {ascii_chars} characters"
            )

    @property
    def mode(self) -> SecurityMode:
        return SecurityMode.WEP


@dataclass(frozen=True)
class PskSecurity:
    """WPA2 personal, or WPA3 compatibility (WPA2/WPA3 transition) mode."""

    passphrase: str
    psk_mode: SecurityMode = SecurityMode.WPA2_PSK
    encryption: str = "aesOnly"
    pmf: str = "disabled"
    key_hex_encoded: bool = False

    def __post_init__(self):
        if self.psk_mode not in PSK_MODES:
            raise ValidationError(f"'{self.psk_mode.value}' is not a pre-shared key mode")
        _check_choice("encryption mode", self.encryption, ENCRYPTION_MODES)
        _check_choice("PMF mode", self.pmf, PMF_MODES)
        _check_passphrase(self.passphrase, self.key_hex_encoded)

    @property
    def mode(self) -> SecurityMode:
        return self.psk_mode


@dataclass(frozen=True)
class SaeSecurity:
    """WPA3 personal (SAE)."""

    passphrase: str
    sae_method: str = "both"
    key_hex_encoded: bool = False

    def __post_init__(self):
        _check_choice("SAE method", self.sae_method, SAE_METHODS)
        _check_passphrase(self.passphrase, self.key_hex_encoded)

    @property
    def mode(self) -> SecurityMode:
        return SecurityMode.WPA3_PERSONAL


@dataclass(frozen=True)
class EnterpriseSecurity:
    """802.1X enterprise modes backed by an AAA policy or RADIUS servers.

    ``fast_transition`` and ``pmf`` default per mode when left as None:
    WPA3 transition enables 802.11r and optional PMF, WPA3-192 requires PMF.
    """

    enterprise_mode: SecurityMode = SecurityMode.WPA2_ENTERPRISE
    aaa_policy_id: Optional[str] = None
    radius_servers: tuple[str, ...] = field(default_factory=tuple)
    auth_method: Optional[str] = None
    ldap_configuration_id: Optional[str] = None
    fast_transition: Optional[bool] = None
    encryption: str = "aesOnly"
    pmf: Optional[str] = None
    mba_enabled: bool = False
    six_e_compliance: bool = False

    def __post_init__(self):
        if self.enterprise_mode not in ENTERPRISE_MODES:
            raise ValidationError(f"'{self.enterprise_mode.value}' is not an enterprise mode")
        if not self.aaa_policy_id and not self.radius_servers:
            raise ValidationError("Enterprise security requires an AAA policy or RADIUS servers")
        if len(self.radius_servers) > MAX_RADIUS_SERVERS:
            raise ValidationError(
                f"At most {MAX_RADIUS_SERVERS} RADIUS servers are supported, "
                f"got {len(self.radius_servers)}"
            )
        _check_choice("encryption mode", self.encryption, ENCRYPTION_MODES)
        if self.pmf is not None:
            _check_choice("PMF mode", self.pmf, PMF_MODES)

    @property
    def mode(self) -> SecurityMode:
        return self.enterprise_mode

    @property
    def effective_fast_transition(self) -> bool:
        if self.fast_transition is not None:
            return self.fast_transition
        return self.enterprise_mode == SecurityMode.WPA3_ENTERPRISE_TRANSITION

    @property
    def effective_pmf(self) -> str:
        if self.enterprise_mode == SecurityMode.WPA3_ENTERPRISE_192:
            return "required"
        if self.enterprise_mode == SecurityMode.WPA3_ENTERPRISE_TRANSITION:
            return "optional"
        return self.pmf or "disabled"


SecuritySettings = Union[
    OpenSecurity,
    OweSecurity,
    WepSecurity,
    PskSecurity,
    SaeSecurity,
    EnterpriseSecurity,
]


def security_from_dict(data: dict[str, Any]) -> SecuritySettings:
    """Build a security variant from a loosely-typed dict.

    The dict must carry ``mode`` (a SecurityMode value); the remaining keys
    are the variant's fields.

    Raises:
        ValidationError: Unknown mode, missing or malformed fields.
    """
    data = dict(data)
    raw_mode = data.pop("mode", None)
    try:
        mode = SecurityMode(raw_mode)
    except ValueError:
        raise ValidationError(f"Unknown security mode: {raw_mode!r}")

    try:
        if mode == SecurityMode.OPEN:
            return OpenSecurity()
        if mode == SecurityMode.OWE:
            return OweSecurity()
        if mode == SecurityMode.WEP:
            return WepSecurity(**data)
        if mode in PSK_MODES:
            return PskSecurity(psk_mode=mode, **data)
        if mode == SecurityMode.WPA3_PERSONAL:
            return SaeSecurity(**data)
        if "radius_servers" in data:
            data["radius_servers"] = tuple(data["radius_servers"] or ())
        return EnterpriseSecurity(enterprise_mode=mode, **data)
    except TypeError as e:
        raise ValidationError(f"Invalid settings for {mode.value} security: {e}", cause=e)
