###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""Security posture checks. All read-only; most need the GCP metadata server."""

from tpudoc.core.engine.models import CheckCategory, CheckOutcome
from tpudoc.core.engine.registry import register_check
from tpudoc.core.errors import PlatformError
from tpudoc.platform.context import EnvironmentContext

NOT_ON_GCP = "Not running on GCP"

SA_EMAIL = "instance/service-accounts/default/email"
SA_SCOPES = "instance/service-accounts/default/scopes"

BROAD_SCOPE_MARKERS = ("cloud-platform", "compute", "devstorage.full")
CONCERNING_PORTS = frozenset({22, 80, 443, 8080, 8888, 3389, 5432, 3306, 6379, 27017})


@register_check(
    "SEC-001",
    name="Service Account Permissions",
    category=CheckCategory.SECURITY,
    description="Identify service account and check for overly permissive roles",
    estimated_ms=500,
)
def check_service_account(env: EnvironmentContext) -> CheckOutcome:
    if not env.on_gcp():
        return CheckOutcome.skip(NOT_ON_GCP)
    try:
        account = env.metadata(SA_EMAIL)
    except PlatformError as e:
        return CheckOutcome.skip(f"Service account info unavailable: {e}")
    if not account:
        return CheckOutcome.skip("Service account info unavailable: no default service account")

    try:
        scopes = (env.metadata(SA_SCOPES) or "").split()
    except PlatformError:
        return CheckOutcome.pass_(f"Service account: {account} (scopes not checked)")
    if any(marker in scope for scope in scopes for marker in BROAD_SCOPE_MARKERS):
        return CheckOutcome.warn(f"Service account {account} has broad scopes", "Consider using more restrictive scopes")
    return CheckOutcome.pass_(f"Service account: {account}")


@register_check(
    "SEC-002",
    name="Network Exposure",
    category=CheckCategory.SECURITY,
    description="Check for services listening on all interfaces",
    estimated_ms=200,
)
def check_network_exposure(env: EnvironmentContext) -> CheckOutcome:
    exposed = env.exposed_ports()
    concerning = [p for p in exposed if p in CONCERNING_PORTS]
    if concerning:
        return CheckOutcome.warn(
            f"{len(concerning)} potentially exposed port(s): {', '.join(str(p) for p in concerning)}",
            "Services bound to 0.0.0.0 are accessible from any interface",
        )
    if exposed:
        return CheckOutcome.pass_(f"{len(exposed)} port(s) listening on all interfaces (none concerning)")
    return CheckOutcome.pass_("No services exposed on all interfaces")


@register_check(
    "SEC-003",
    name="Workload Identity Status",
    category=CheckCategory.SECURITY,
    description="Check if workload identity is configured",
    depends_on=["SEC-001"],
    estimated_ms=300,
)
def check_workload_identity(env: EnvironmentContext) -> CheckOutcome:
    if not env.on_gcp():
        return CheckOutcome.skip(NOT_ON_GCP)
    try:
        cluster = env.metadata("instance/attributes/gke-cluster-name")
    except PlatformError:
        cluster = None
    if cluster:
        return CheckOutcome.pass_("Running in GKE with potential workload identity")

    try:
        account = env.metadata(SA_EMAIL)
    except PlatformError:
        account = None
    if not account:
        return CheckOutcome.skip("Could not determine service account configuration")
    if "compute@developer" in account:
        return CheckOutcome.warn(
            "Using default Compute Engine service account",
            "Consider using a custom service account with minimal permissions",
        )
    return CheckOutcome.pass_(f"Using custom service account: {account}")


@register_check(
    "SEC-004",
    name="Encryption Status",
    category=CheckCategory.SECURITY,
    description="Verify data encryption settings",
    estimated_ms=10,
)
def check_encryption(env: EnvironmentContext) -> CheckOutcome:
    if not env.on_gcp():
        return CheckOutcome.skip(NOT_ON_GCP)
    # GCP always encrypts data at rest
    return CheckOutcome.pass_("GCP default encryption at rest enabled")


@register_check(
    "SEC-005",
    name="Instance Metadata Access",
    category=CheckCategory.SECURITY,
    description="Verify metadata server access configuration",
    estimated_ms=500,
)
def check_metadata_access(env: EnvironmentContext) -> CheckOutcome:
    if not env.on_gcp():
        return CheckOutcome.skip(NOT_ON_GCP)
    try:
        status = env.metadata_status_without_header()
    except PlatformError as e:
        return CheckOutcome.skip(f"Could not check metadata access: {e}")
    if status == 403:
        return CheckOutcome.pass_("Metadata access requires proper headers")
    return CheckOutcome.warn(
        "Metadata server accessible without protection headers", "Consider enabling metadata concealment"
    )


@register_check(
    "SEC-006",
    name="SSH Key Management",
    category=CheckCategory.SECURITY,
    description="Check for OS Login vs legacy SSH keys",
    estimated_ms=300,
)
def check_ssh_keys(env: EnvironmentContext) -> CheckOutcome:
    if not env.on_gcp():
        return CheckOutcome.skip(NOT_ON_GCP)
    try:
        value = env.metadata("instance/attributes/enable-oslogin")
    except PlatformError:
        return CheckOutcome.warn("Could not determine OS Login status", "Unable to query instance metadata")
    if value and value.lower() == "true":
        return CheckOutcome.pass_("OS Login enabled")
    return CheckOutcome.warn(
        "OS Login not enabled", "Consider enabling OS Login for centralized SSH key management"
    )


@register_check(
    "SEC-007",
    name="Firewall Rules",
    category=CheckCategory.SECURITY,
    description="Provide guidance on firewall configuration",
    estimated_ms=10,
)
def check_firewall(env: EnvironmentContext) -> CheckOutcome:
    # Firewall rules are not visible from inside the instance
    return CheckOutcome.pass_("Firewall rules must be verified via GCP Console or gcloud")
