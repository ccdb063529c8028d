"""FastAPI router for network deployment endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ...api.database import check_database_health
from ...api.error_sanitizer import sanitize_error_message
from ..domain.entities import DeploymentOptions, DeploymentSummary, SiteId
from ..domain.exceptions import EntityCreationError, ValidationError
from ..domain.ports import IAssignmentStore, IControlPlanePort
from ..use_cases import (
    DeployNetworkUseCase,
    ProfileDiscoveryUseCase,
    ReconcileUseCase,
    unique_profiles,
)
from .dependencies import (
    get_control_plane,
    get_controller_client,
    get_db_pool,
    get_store,
    verify_api_key,
)
from .schemas import (
    AssignmentResultDTO,
    AssignmentsResponse,
    DeployRequest,
    DeployResponse,
    DeviceProfileDTO,
    PreviewRequest,
    PreviewResponse,
    ProfileAssignmentRecordDTO,
    ReconcileResponse,
    RemediationActionDTO,
    RemediationResponse,
    SiteAssignmentRecordDTO,
    SyncResultDTO,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/deployments", tags=["Network Deployment"])


def _validation_exception(error: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"message": error.message, "errors": error.errors},
    )


def _to_response(summary: DeploymentSummary) -> DeployResponse:
    # Error strings can carry controller response bodies
    assignments = []
    for a in summary.assignments:
        dto = AssignmentResultDTO.model_validate(a)
        if dto.error:
            dto.error = sanitize_error_message(dto.error)
        assignments.append(dto)

    sync_results = None
    if summary.sync_results is not None:
        sync_results = []
        for s in summary.sync_results:
            dto = SyncResultDTO.model_validate(s)
            if dto.error:
                dto.error = sanitize_error_message(dto.error)
            sync_results.append(dto)

    return DeployResponse(
        entity_id=summary.entity_id,
        sites_processed=summary.sites_processed,
        device_groups_found=summary.device_groups_found,
        profiles_assigned=summary.profiles_assigned,
        assignments=assignments,
        sync_results=sync_results,
        success=summary.success,
        errors=[sanitize_error_message(e) for e in summary.errors],
        dry_run=summary.dry_run,
    )


async def _deploy(
    request: DeployRequest,
    control_plane: IControlPlanePort,
    store: IAssignmentStore,
    dry_run: bool,
) -> DeployResponse:
    try:
        definition = request.network.to_domain()
        configs = [site.to_domain() for site in request.sites]
        summary = await DeployNetworkUseCase(control_plane, store).execute(
            definition,
            configs,
            DeploymentOptions(
                dry_run=dry_run,
                skip_sync=request.skip_sync,
                explicit_profile_ids=frozenset(request.explicit_profile_ids),
            ),
        )
    except ValidationError as e:
        logger.info(f"Rejected deployment request: {e.message}")
        raise _validation_exception(e)
    except EntityCreationError as e:
        logger.error(f"Network creation failed: {e.message}")
        raise HTTPException(
            status_code=502,
            detail=sanitize_error_message(e.message, "Controller error"),
        )

    return _to_response(summary)


@router.post("/", response_model=DeployResponse)
async def deploy_network(
    request: DeployRequest,
    control_plane: IControlPlanePort = Depends(get_control_plane),
    store: IAssignmentStore = Depends(get_store),
    _auth: bool = Depends(verify_api_key),
):
    """Create a network on the controller and assign it to site profiles.

    Returns 200 with ``success=false`` when some profiles failed to
    assign; those stay recorded for reconciliation. Returns 422 for a
    malformed network or site policy and 502 when the controller refuses
    to create the network.
    """
    logger.info(
        f"=== DEPLOY REQUEST: network '{request.network.name}' "
        f"to {len(request.sites)} sites ==="
    )
    return await _deploy(request, control_plane, store, dry_run=request.dry_run)


@router.post("/dry-run", response_model=DeployResponse)
async def dry_run_deployment(
    request: DeployRequest,
    control_plane: IControlPlanePort = Depends(get_control_plane),
    store: IAssignmentStore = Depends(get_store),
    _auth: bool = Depends(verify_api_key),
):
    """Project a deployment without creating or assigning anything."""
    return await _deploy(request, control_plane, store, dry_run=True)


@router.post("/preview", response_model=PreviewResponse)
async def preview_profiles(
    request: PreviewRequest,
    control_plane: IControlPlanePort = Depends(get_control_plane),
    _auth: bool = Depends(verify_api_key),
):
    """List the profiles present at the given sites."""
    discovery = await ProfileDiscoveryUseCase(control_plane).discover(
        [SiteId(s) for s in request.site_ids]
    )
    profiles = unique_profiles(discovery.profiles_by_site)

    return PreviewResponse(
        profiles=[DeviceProfileDTO.model_validate(p) for p in profiles],
        total_profiles=len(profiles),
        device_groups_found=discovery.device_groups_found,
        failed_sites={
            site_id: sanitize_error_message(reason)
            for site_id, reason in discovery.failed_sites.items()
        },
    )


@router.post("/networks/{network_id}/reconcile", response_model=ReconcileResponse)
async def reconcile_network(
    network_id: str,
    control_plane: IControlPlanePort = Depends(get_control_plane),
    store: IAssignmentStore = Depends(get_store),
    _auth: bool = Depends(verify_api_key),
):
    """Compare persisted intent with the controller and save the outcome."""
    try:
        result = await ReconcileUseCase(control_plane, store).reconcile(network_id)
    except Exception as e:
        logger.exception(f"Reconciliation of network {network_id} failed")
        raise HTTPException(
            status_code=500,
            detail=sanitize_error_message(str(e), "Reconciliation failed"),
        )

    return ReconcileResponse.model_validate(result)


@router.get("/networks/{network_id}/remediation", response_model=RemediationResponse)
async def get_remediation_plan(
    network_id: str,
    control_plane: IControlPlanePort = Depends(get_control_plane),
    store: IAssignmentStore = Depends(get_store),
    _auth: bool = Depends(verify_api_key),
):
    """Plan fixes for the mismatches recorded by the last reconciliation.

    Nothing is executed. Mismatches that need a human decision are listed
    under ``unresolved``.
    """
    use_case = ReconcileUseCase(control_plane, store)
    result = await use_case.load_last_result(network_id)
    actions = use_case.plan_remediation(result)
    planned = {a.profile_id for a in actions}

    return RemediationResponse(
        network_id=network_id,
        actions=[RemediationActionDTO.model_validate(a) for a in actions],
        unresolved=[
            ProfileAssignmentRecordDTO.model_validate(r)
            for r in result.mismatches
            if r.profile_id not in planned
        ],
    )


@router.get("/networks/{network_id}/assignments", response_model=AssignmentsResponse)
async def get_assignments(
    network_id: str,
    store: IAssignmentStore = Depends(get_store),
    _auth: bool = Depends(verify_api_key),
):
    """Persisted site and profile intent of a network."""
    sites = await store.get_site_assignments(network_id)
    profiles = await store.get_profile_assignments(network_id)
    if not sites and not profiles:
        raise HTTPException(status_code=404, detail=f"No assignments for network {network_id}")

    return AssignmentsResponse(
        network_id=network_id,
        sites=[SiteAssignmentRecordDTO.model_validate(s) for s in sites],
        profiles=[ProfileAssignmentRecordDTO.model_validate(p) for p in profiles],
    )


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    health = {"status": "healthy", "service": "network-deployment"}

    client = get_controller_client()
    if client is not None:
        health["controller_circuit"] = client.circuit_status

    pool = get_db_pool()
    if pool is not None:
        database = await check_database_health(pool)
        health["database"] = database
        if not database.get("healthy"):
            health["status"] = "degraded"

    return health
