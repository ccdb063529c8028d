#!/usr/bin/env python3
"""WLAN Network Deployment CLI.

This module provides a command-line interface for deploying a wireless
network onto controller device profiles, previewing the profiles at a set
of sites, and reconciling persisted intent against the controller.

Architecture:
    - ControllerClient is the shared HTTP layer for all controller calls
    - ControllerTokenManager handles the OAuth2 password grant
    - ControllerPlaneAdapter and the assignment store are injected into
      the same use cases the HTTP API runs

Environment Variables Required:
    - CONTROLLER_BASE_URL: Controller base URL (e.g. https://ctrl:5825)
    - CONTROLLER_USERNAME: API user
    - CONTROLLER_PASSWORD: API password
    - DATABASE_URL: PostgreSQL connection string (optional for deploy and
      preview; intent is only kept in memory without it)

Example Usage:
    $ python main.py preview SITE-1 SITE-2
    $ python main.py deploy deployment.json --dry-run
    $ python main.py deploy deployment.json --skip-sync
    $ python main.py reconcile 4f1c2a --plan
"""
import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import datetime, timezone

from dotenv import load_dotenv

load_dotenv()

from src.wlan.api import (
    ConfigurationError,
    ControllerClient,
    ControllerTokenManager,
    close_pool,
    create_pool,
)
from src.wlan.deployment.adapters import (
    ControllerPlaneAdapter,
    InMemoryAssignmentStore,
    PostgresAssignmentStore,
)
from src.wlan.deployment.api.schemas import DeployRequest
from src.wlan.deployment.domain import (
    DeploymentOptions,
    DeploymentSummary,
    DomainValidationError,
    EntityCreationError,
    SiteId,
)
from src.wlan.deployment.use_cases import (
    DeployNetworkUseCase,
    ProfileDiscoveryUseCase,
    ReconcileUseCase,
    unique_profiles,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def setup_store(required: bool = False):
    """Create the assignment store.

    Returns:
        (store, pool); pool is None for the in-memory store
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        if required:
            print("[Main] DATABASE_URL is required for this command")
            sys.exit(1)
        print("[Main] No database configured, assignment intent will not be kept")
        return InMemoryAssignmentStore(), None

    pool = await create_pool(database_url)
    store = PostgresAssignmentStore(pool)
    await store.ensure_schema()
    print("[Main] Connected to PostgreSQL")
    return store, pool


def load_deployment(path: str) -> DeployRequest:
    """Read a deployment file: {"network": {...}, "sites": [...]}."""
    with open(path) as f:
        return DeployRequest.model_validate(json.load(f))


def print_summary(summary: DeploymentSummary) -> None:
    print("\n" + "=" * 60)
    print("DRY RUN" if summary.dry_run else "DEPLOYMENT COMPLETE")
    print("=" * 60)
    print(f"Network entity:     {summary.entity_id or '-'}")
    print(f"Sites processed:    {summary.sites_processed}")
    print(f"Device groups:      {summary.device_groups_found}")
    print(f"Profiles assigned:  {summary.profiles_assigned}/{len(summary.assignments)}")

    print(f"\n{'Profile':<30} {'Result':<10} {'Detail'}")
    print("-" * 80)
    for a in summary.assignments:
        if a.note:
            result, detail = "planned", a.note
        elif a.success:
            result, detail = "assigned", ""
        else:
            result, detail = "skipped" if a.skipped else "failed", a.error or ""
        print(f"{a.profile_name[:28]:<30} {result:<10} {detail}")

    failed = summary.failed_assignments
    if failed:
        print(f"\nNeeds attention: {', '.join(a.profile_name for a in failed)}")

    if summary.sync_results:
        synced = sum(1 for s in summary.sync_results if s.success)
        print(f"\nSynced: {synced}/{len(summary.sync_results)}")

    for error in summary.errors:
        print(f"⚠️  {error}")

    print(f"\nSuccess: {summary.success}")


async def run_deploy(client: ControllerClient, args: argparse.Namespace) -> int:
    request = load_deployment(args.file)
    store, pool = await setup_store()

    try:
        use_case = DeployNetworkUseCase(ControllerPlaneAdapter(client), store)
        summary = await use_case.execute(
            request.network.to_domain(),
            [site.to_domain() for site in request.sites],
            DeploymentOptions(
                dry_run=args.dry_run or request.dry_run,
                skip_sync=args.skip_sync or request.skip_sync,
                explicit_profile_ids=frozenset(request.explicit_profile_ids),
            ),
        )
    except DomainValidationError as e:
        print(f"[Main] Invalid deployment: {e.message}")
        for error in e.errors:
            print(f"  - {error}")
        return 2
    except EntityCreationError as e:
        print(f"[Main] Network creation failed: {e.message}")
        return 1
    finally:
        await close_pool(pool)

    print_summary(summary)
    return 0 if summary.success else 1


async def run_preview(client: ControllerClient, args: argparse.Namespace) -> int:
    discovery = await ProfileDiscoveryUseCase(ControllerPlaneAdapter(client)).discover(
        [SiteId(s) for s in args.site_ids]
    )
    profiles = unique_profiles(discovery.profiles_by_site)

    print(f"\n{'Profile ID':<38} {'Name':<30} {'Site':<20}")
    print("-" * 90)
    for p in profiles:
        print(f"{p.id:<38} {p.name[:28]:<30} {p.site_id:<20}")

    print(f"\n{len(profiles)} profiles in {discovery.device_groups_found} device groups")
    for site_id, reason in discovery.failed_sites.items():
        print(f"⚠️  Site {site_id} failed: {reason}")
    return 0


async def run_reconcile(client: ControllerClient, args: argparse.Namespace) -> int:
    store, pool = await setup_store(required=True)
    try:
        use_case = ReconcileUseCase(ControllerPlaneAdapter(client), store)
        result = await use_case.reconcile(args.network_id)
    finally:
        await close_pool(pool)

    print(f"\nExpected: {result.total_expected}  Actual: {result.total_actual}")
    print(f"Matched: {result.matched}  Mismatched: {result.mismatched}")
    for record in result.mismatches:
        print(f"  {record.profile_name or record.profile_id:<30} {record.mismatch.value}")

    if args.plan:
        actions = use_case.plan_remediation(result)
        print(f"\nRemediation plan ({len(actions)} actions, not executed):")
        for action in actions:
            print(f"  [{action.action.value}] {action.description}")
    return 0 if result.mismatched == 0 else 1


COMMANDS = {
    "deploy": run_deploy,
    "preview": run_preview,
    "reconcile": run_reconcile,
}


async def run(args: argparse.Namespace) -> int:
    start_time = datetime.now(timezone.utc)
    print(f"[Main] Starting at {start_time.isoformat()}")

    try:
        token_manager = ControllerTokenManager()
    except ConfigurationError as e:
        print(f"[Main] Configuration error: {e.message}")
        return 1

    async with ControllerClient(token_manager) as client:
        code = await COMMANDS[args.command](client, args)

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    print(f"\n[Main] Completed in {duration:.1f} seconds")
    return code


def main():
    parser = argparse.ArgumentParser(
        description="Deploy wireless networks to controller device profiles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py preview SITE-1 SITE-2          # List profiles at two sites
  python main.py deploy net.json --dry-run      # Show which profiles would be targeted
  python main.py deploy net.json                # Create, assign and sync
  python main.py reconcile NETWORK_ID --plan    # Detect drift and plan fixes
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    deploy = subparsers.add_parser("deploy", help="Deploy a network described in a JSON file")
    deploy.add_argument("file", help="JSON file with 'network' and 'sites'")
    deploy.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report which profiles would receive the network",
    )
    deploy.add_argument(
        "--skip-sync",
        action="store_true",
        help="Assign without pushing configuration to the profiles",
    )

    preview = subparsers.add_parser("preview", help="List the profiles at one or more sites")
    preview.add_argument("site_ids", nargs="+", metavar="SITE_ID")

    reconcile = subparsers.add_parser(
        "reconcile", help="Compare persisted intent with the controller"
    )
    reconcile.add_argument("network_id", help="Network entity id")
    reconcile.add_argument(
        "--plan",
        action="store_true",
        help="Also print the remediation plan",
    )

    args = parser.parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
