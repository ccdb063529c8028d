"""Controller service payload builder.

Translates a NetworkDefinition into the JSON body of
``POST /management/v1/services``. The ``privacy`` element is keyed by
the controller's element name for the security mode (e.g.
``WpaPskElement``); open networks send ``privacy: null``.
"""

from typing import Any, Optional

from ..domain.entities import NetworkDefinition
from ..domain.security import (
    EnterpriseSecurity,
    OpenSecurity,
    OweSecurity,
    PskSecurity,
    SaeSecurity,
    SecurityMode,
    SecuritySettings,
    WepSecurity,
)

RADIUS_SERVER_FIELDS = (
    "primaryRadiusServer",
    "backupRadiusServer",
    "thirdRadiusServer",
    "fourthRadiusServer",
)

ENTERPRISE_ELEMENTS = {
    SecurityMode.WPA2_ENTERPRISE: "Wpa2EnterpriseElement",
    SecurityMode.WPA3_ENTERPRISE_TRANSITION: "Wpa3EnterpriseTransitionElement",
    SecurityMode.WPA3_ENTERPRISE_192: "Wpa3Enterprise192Element",
}


def build_privacy_payload(security: SecuritySettings) -> Optional[dict[str, Any]]:
    """Build the controller privacy element for a security variant."""
    if isinstance(security, OpenSecurity):
        return None

    if isinstance(security, OweSecurity):
        return {"OweElement": {"pmfMode": "required"}}

    if isinstance(security, WepSecurity):
        return {
            "WepElement": {
                "keyLength": security.key_length,
                "inputMethod": security.input_method,
                "keyIndex": security.key_index,
                "key": security.key,
            }
        }

    if isinstance(security, PskSecurity):
        if security.mode == SecurityMode.WPA3_COMPATIBILITY:
            # WPA2/WPA3 transition: AES with optional PMF
            return {
                "WpaPskElement": {
                    "mode": "aesOnly",
                    "pmfMode": "optional",
                    "presharedKey": security.passphrase,
                    "keyHexEncoded": security.key_hex_encoded,
                }
            }
        return {
            "WpaPskElement": {
                "mode": security.encryption,
                "pmfMode": security.pmf,
                "presharedKey": security.passphrase,
                "keyHexEncoded": security.key_hex_encoded,
            }
        }

    if isinstance(security, SaeSecurity):
        return {
            "Wpa3SaeElement": {
                "mode": "aesOnly",
                "pmfMode": "required",
                "saeMethod": security.sae_method,
                "presharedKey": security.passphrase,
                "keyHexEncoded": security.key_hex_encoded,
            }
        }

    if isinstance(security, EnterpriseSecurity):
        if security.mode == SecurityMode.WPA3_ENTERPRISE_192:
            encryption = "gcmp256"
        elif security.mode == SecurityMode.WPA3_ENTERPRISE_TRANSITION:
            encryption = "aesOnly"
        else:
            encryption = security.encryption
        return {
            ENTERPRISE_ELEMENTS[security.mode]: {
                "mode": encryption,
                "pmfMode": security.effective_pmf,
                "fastTransition": security.effective_fast_transition,
            }
        }

    raise TypeError(f"Unsupported security settings: {type(security).__name__}")


def build_service_payload(definition: NetworkDefinition) -> dict[str, Any]:
    """Build the full service body for a network definition."""
    security = definition.security
    features = definition.features
    enterprise = security if isinstance(security, EnterpriseSecurity) else None

    payload: dict[str, Any] = {
        "serviceName": definition.name,
        "ssid": definition.ssid,
        "status": "enabled" if definition.enabled else "disabled",
        "suppressSsid": definition.hidden,
        "canEdit": True,
        "canDelete": True,
        "proxied": "Local",
        "shutdownOnMeshpointLoss": False,
        "dot1dPortNumber": definition.vlan,
        "privacy": build_privacy_payload(security),
        "mbaAuthorization": enterprise.mba_enabled if enterprise else False,
        # 802.11k/mc
        "enabled11kSupport": features.rm_11k,
        "rm11kBeaconReport": features.rm_11k_beacon_report,
        "rm11kQuietIe": features.rm_11k_quiet_ie,
        "enable11mcSupport": features.ftm_11mc,
        # QoS
        "uapsdEnabled": features.uapsd,
        "admissionControlVideo": features.admission_control_video,
        "admissionControlVoice": features.admission_control_voice,
        "admissionControlBestEffort": features.admission_control_best_effort,
        "admissionControlBackgroundTraffic": features.admission_control_background,
        # Client handling
        "flexibleClientAccess": False,
        "accountingEnabled": features.accounting,
        "clientToClientCommunication": features.client_to_client,
        "includeHostname": features.include_hostname,
        "mbo": features.mbo,
        "oweAutogen": security.mode == SecurityMode.OWE,
        "oweCompanion": None,
        "purgeOnDisconnect": features.purge_on_disconnect,
        "beaconProtection": features.beacon_protection,
        "sixEWpaCompliance": enterprise.six_e_compliance if enterprise else False,
        # Policies
        "aaaPolicyId": enterprise.aaa_policy_id if enterprise else None,
        "mbatimeoutRoleId": None,
        "roamingAssistPolicy": None,
        "vendorSpecificAttributes": ["apName", "vnsName", "ssid"],
        # Captive portal
        "enableCaptivePortal": False,
        "captivePortalType": None,
        "eGuestPortalId": None,
        "eGuestSettings": [],
        # Timeouts (seconds)
        "preAuthenticatedIdleTimeout": features.pre_auth_idle_timeout,
        "postAuthenticatedIdleTimeout": features.post_auth_idle_timeout,
        "sessionTimeout": features.session_timeout,
    }

    if definition.topology_id:
        payload["defaultTopology"] = definition.topology_id
    if definition.cos_id:
        payload["defaultCoS"] = definition.cos_id
    if definition.default_role_id:
        payload["authenticatedUserDefaultRoleID"] = definition.default_role_id
        payload["unAuthenticatedUserDefaultRoleID"] = definition.default_role_id

    if enterprise:
        for field_name, server in zip(RADIUS_SERVER_FIELDS, enterprise.radius_servers):
            payload[field_name] = server
        if enterprise.auth_method:
            payload["authenticationMethod"] = enterprise.auth_method
        if enterprise.ldap_configuration_id:
            payload["ldapConfigurationId"] = enterprise.ldap_configuration_id

    if definition.description:
        payload["description"] = definition.description

    return payload
