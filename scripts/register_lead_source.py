"""
Register a lead-intel webhook source for a workspace.

Usage:
    # Dry run (show what would be created):
    python scripts/register_lead_source.py --workspace 2b1f... --provider opensend

    # Create it, with a per-source secret and contact-level matching on:
    python scripts/register_lead_source.py \\
        --workspace 2b1f6c1e-7a7d-4a55-9f3e-0d4a9a8c1f22 \\
        --provider opensend \\
        --account-id acct_123 \\
        --secret "$OPENSEND_SOURCE_SECRET" \\
        --contact-level \\
        --commit

Prints the webhook URL to configure on the provider side.
"""
import argparse
import asyncio
import sys
import uuid

from sqlalchemy import select, and_


async def main():
    parser = argparse.ArgumentParser(description="Register a lead-intel webhook source")
    parser.add_argument("--workspace", required=True, help="Workspace UUID")
    parser.add_argument("--provider", required=True, choices=["opensend", "warmly"])
    parser.add_argument("--account-id", help="Provider account id sent in payloads")
    parser.add_argument("--secret", help="Per-source HMAC secret (stored encrypted)")
    parser.add_argument("--contact-level", action="store_true", help="Enable contact-level matching")
    parser.add_argument("--retention-days", type=int, default=90, help="Days to keep events")
    parser.add_argument("--commit", action="store_true", help="Actually write changes")
    args = parser.parse_args()

    try:
        workspace_id = uuid.UUID(args.workspace)
    except ValueError:
        print(f"ERROR: '{args.workspace}' is not a valid workspace UUID")
        sys.exit(1)

    from leadintel.config import get_settings
    from leadintel.database import async_session_factory
    from leadintel.models.lead_source import LeadSource
    from leadintel.services.lead_sources import create_lead_source

    async with async_session_factory() as db:
        result = await db.execute(
            select(LeadSource).where(
                and_(
                    LeadSource.workspace_id == workspace_id,
                    LeadSource.provider == args.provider,
                )
            )
        )
        if result.scalar_one_or_none():
            print(f"ERROR: workspace {args.workspace[:8]} already has a {args.provider} source")
            sys.exit(1)

        print(f"Workspace:      {workspace_id}")
        print(f"Provider:       {args.provider}")
        print(f"Account id:     {args.account_id or '(none - use ?workspace_id=)'}")
        print(f"Source secret:  {'set' if args.secret else 'none'}")
        print(f"Contact level:  {'enabled' if args.contact_level else 'disabled'}")
        print(f"Retention:      {args.retention_days} days")

        if not args.commit:
            print("\nDry run - pass --commit to create the source")
            return

        source = await create_lead_source(
            db,
            workspace_id=workspace_id,
            provider=args.provider,
            provider_account_id=args.account_id,
            webhook_secret=args.secret,
            contact_level_enabled=args.contact_level,
            retention_days=args.retention_days,
        )
        await db.commit()

    base_url = get_settings().app_base_url.rstrip("/")
    print(f"\nCreated lead source {source.id}")
    print(f"Webhook URL: {base_url}/api/v1/webhook/lead-intel/{args.provider}?workspace_id={workspace_id}")


if __name__ == "__main__":
    asyncio.run(main())
