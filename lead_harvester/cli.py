"""Command line interface for the lead harvesting pipeline."""
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .config import ConfigurationError, Settings, load_settings
from .dedupe import LeadDeduplicator
from .factory import Registries, build_pipeline, build_registries
from .health import pipeline_health
from .ingestion import export_dnc, export_filename, export_instantly, export_leads, load_businesses
from .jobs import ScrapeTarget
from .leads import LEAD_STATUSES, LeadNotFoundError
from .orchestrator.service import MODE_ALL_BUSINESSES, MODE_CATEGORY, ScrapeRequest
from .outcomes import OUTCOME_RULES, CallOutcomeProcessor

LOGGER = logging.getLogger(__name__)

Handler = Callable[[argparse.Namespace, Settings], int]


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Scrape, deduplicate and enrich local business leads",
    )
    parser.add_argument("--config", help="Path to a configuration file (YAML or JSON)")
    parser.add_argument("--data-dir", help="Directory holding the JSON data documents")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    commands = parser.add_subparsers(dest="command", metavar="command")

    dnc = commands.add_parser("dnc", help="Manage the Do Not Call list")
    dnc_commands = dnc.add_subparsers(dest="dnc_command", metavar="action")
    dnc_add = dnc_commands.add_parser("add", help="Block a phone number")
    dnc_add.add_argument("phone")
    dnc_add.add_argument("--reason", default="Not interested")
    dnc_add.add_argument("--source", default="manual")
    dnc_check = dnc_commands.add_parser("check", help="Check whether a phone number is blocked")
    dnc_check.add_argument("phone")
    dnc_remove = dnc_commands.add_parser("remove", help="Unblock a phone number")
    dnc_remove.add_argument("phone")
    dnc_commands.add_parser("count", help="Print the number of blocked phone numbers")

    commands.add_parser("stats", help="Print lead and pool statistics")

    leads = commands.add_parser("leads", help="List stored leads, newest first")
    leads.add_argument("--campaign", help="Campaign id or name")
    leads.add_argument("--status", choices=LEAD_STATUSES)
    leads.add_argument("--search", help="Match name, phone or address")
    email_filter = leads.add_mutually_exclusive_group()
    email_filter.add_argument("--with-email", dest="has_email", action="store_true", default=None)
    email_filter.add_argument(
        "--without-email",
        dest="has_email",
        action="store_false",
        default=None,
        help="Leads with a website but no email yet",
    )
    leads.add_argument("--limit", type=int, default=None)

    status = commands.add_parser("status", help="Set the status of a lead")
    status.add_argument("lead_id")
    status.add_argument("status", choices=LEAD_STATUSES)
    status.add_argument("--notes")

    logs = commands.add_parser("logs", help="Print recent pipeline events")
    logs.add_argument("--errors", action="store_true", help="Only print error events")
    logs.add_argument("--jobs", action="store_true", help="Print recorded job summaries instead")
    logs.add_argument("--limit", type=int, default=50)

    health = commands.add_parser("health", help="Print the pipeline health report")
    health.add_argument("--daily-target", type=int, default=None, help="Leads called per day")

    campaigns = commands.add_parser("campaigns", help="List campaigns")
    campaigns.add_argument("--delete", metavar="CAMPAIGN_ID", help="Delete a campaign and its leads")

    import_cmd = commands.add_parser("import", help="Import businesses from a CSV/XLSX file")
    import_cmd.add_argument("input", help="Path to the spreadsheet")
    import_cmd.add_argument("--campaign", required=True, help="Campaign receiving the new leads")
    import_cmd.add_argument("--city", help="City recorded on a new campaign")

    scrape = commands.add_parser("scrape", help="Search DataForSEO and store new leads")
    scrape.add_argument("--campaign", required=True, help="Campaign receiving the new leads")
    scrape.add_argument(
        "--location",
        action="append",
        required=True,
        help="Area to search, e.g. 'Plateau Mont-Royal, Montreal, QC, Canada' (repeatable)",
    )
    scrape.add_argument("--category", help="Business category searched in 'category' mode")
    scrape.add_argument("--mode", choices=[MODE_CATEGORY, MODE_ALL_BUSINESSES], default=MODE_CATEGORY)
    scrape.add_argument("--postal-code", action="append", default=[], help="Postal code covered (repeatable)")
    scrape.add_argument("--city", help="City recorded on a new campaign")

    extract_one = commands.add_parser("extract-email", help="Find the best contact email on a website")
    extract_one.add_argument("url")
    extract_one.add_argument("--lead-id", help="Attach the best email to this lead")

    extract_many = commands.add_parser("extract-emails", help="Find emails for stored leads")
    extract_many.add_argument("--lead-id", action="append", default=[], help="Lead to process (repeatable)")
    extract_many.add_argument("--campaign", help="Process leads of this campaign that have no email yet")
    extract_many.add_argument("--limit", type=int, default=None)

    export = commands.add_parser("export", help="Export data to CSV or Excel")
    export.add_argument("kind", choices=["leads", "dnc", "instantly"])
    export.add_argument("output", nargs="?", help="Output file (.csv or .xlsx)")
    export.add_argument("--campaign", help="Only export leads from this campaign")
    export.add_argument(
        "--include-without-email",
        action="store_true",
        help="Also export leads without an email (instantly only)",
    )

    outcome = commands.add_parser("outcome", help="Record the outcome of a call")
    outcome.add_argument("phone")
    outcome.add_argument("outcome", choices=sorted(OUTCOME_RULES))
    outcome.add_argument("--lead-id", help="Lead whose status is updated")

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


# ----------------------------------------------------------------------
# Command handlers
# ----------------------------------------------------------------------
def _registries(settings: Settings) -> Registries:
    return build_registries(settings)


def _cmd_dnc(args: argparse.Namespace, settings: Settings) -> int:
    dnc = _registries(settings).dnc
    if args.dnc_command == "add":
        if not dnc.add(args.phone, args.reason, args.source):
            print(f"Could not parse phone number '{args.phone}'", file=sys.stderr)
            return 1
        print(f"Blocked {args.phone}")
        return 0
    if args.dnc_command == "check":
        entry = dnc.get(args.phone)
        if entry is None:
            print(f"{args.phone} is not on the DNC list")
            return 0
        _print_json({"phone": entry.phone_key, **entry.to_dict()})
        return 0
    if args.dnc_command == "remove":
        if not dnc.remove(args.phone):
            print(f"{args.phone} was not on the DNC list")
            return 1
        print(f"Removed {args.phone}")
        return 0
    if args.dnc_command == "count":
        print(dnc.count())
        return 0
    print("Choose one of: add, check, remove, count", file=sys.stderr)
    return 2


def _cmd_stats(args: argparse.Namespace, settings: Settings) -> int:
    registries = _registries(settings)
    _print_json(
        {
            "leads": registries.leads.stats().to_dict(),
            "pool": dataclasses.asdict(registries.pool.get_stats()),
            "dncCount": registries.dnc.count(),
        }
    )
    return 0


def _cmd_health(args: argparse.Namespace, settings: Settings) -> int:
    registries = _registries(settings)
    report = pipeline_health(
        registries.leads,
        registries.pool,
        registries.dnc,
        daily_target=args.daily_target or settings.daily_target,
    )
    _print_json(report.to_dict())
    return 0


def _cmd_campaigns(args: argparse.Namespace, settings: Settings) -> int:
    leads = _registries(settings).leads
    if args.delete:
        if not leads.delete_campaign(args.delete):
            print(f"Campaign '{args.delete}' not found", file=sys.stderr)
            return 1
        print(f"Deleted campaign {args.delete}")
        return 0
    _print_json([campaign.to_dict() for campaign in leads.campaigns()])
    return 0


def _cmd_import(args: argparse.Namespace, settings: Settings) -> int:
    registries = _registries(settings)
    listings = load_businesses(args.input)
    outcome, validation = LeadDeduplicator(registries.dnc, registries.pool).prepare(listings)
    saved = registries.leads.add_leads(validation.valid, args.campaign, args.city) if validation.valid else []
    registries.pool.track_leads(saved, args.campaign)
    registries.pool.update_scrape_stats(
        scraped=len(listings),
        imported=len(saved),
        duplicates=outcome.removed + len(validation.duplicates),
    )
    _print_json({"read": len(listings), "jobDuplicates": outcome.removed, **validation.summary(), "saved": len(saved)})
    return 0


def _cmd_scrape(args: argparse.Namespace, settings: Settings) -> int:
    pipeline = build_pipeline(settings)
    if pipeline.search_client is None:
        print("DataForSEO credentials are not configured", file=sys.stderr)
        return 1
    postal_codes: List[str] = list(args.postal_code)
    targets = [
        ScrapeTarget(
            name=location.split(",")[0].strip() or location,
            location=location,
            postal_code=postal_codes[index] if index < len(postal_codes) else None,
        )
        for index, location in enumerate(args.location)
    ]
    request = ScrapeRequest(
        campaign_name=args.campaign,
        targets=targets,
        mode=args.mode,
        category=args.category,
        city=args.city,
        postal_codes=postal_codes,
    )
    job = pipeline.wait(pipeline.start_scrape(request))
    _print_json(job.to_dict())
    return 0


def _cmd_extract_email(args: argparse.Namespace, settings: Settings) -> int:
    pipeline = build_pipeline(settings)
    result = pipeline.extract_single(args.url, args.lead_id)
    _print_json(result.to_dict())
    return 0 if result.best_email else 1


def _cmd_extract_emails(args: argparse.Namespace, settings: Settings) -> int:
    pipeline = build_pipeline(settings)
    lead_ids = list(args.lead_id)
    if not lead_ids:
        pending = pipeline.leads.list_leads(campaign=args.campaign, has_email=False, limit=args.limit)
        lead_ids = [lead.id for lead in pending]
    if not lead_ids:
        print("No leads with a website and no email to process")
        return 0
    job = pipeline.wait(pipeline.start_email_extraction(lead_ids))
    _print_json({**job.to_dict(), "results": [result.to_dict() for result in job.results]})
    return 0


def _cmd_export(args: argparse.Namespace, settings: Settings) -> int:
    registries = _registries(settings)
    output = args.output or export_filename(args.kind, args.campaign, date.today().isoformat())
    if args.kind == "dnc":
        path = export_dnc(registries.dnc.entries(), output)
    else:
        leads = registries.leads.list_leads(campaign=args.campaign)
        if args.kind == "leads":
            path = export_leads(leads, output)
        else:
            path = export_instantly(leads, output, only_with_email=not args.include_without_email)
    LOGGER.info("Export written to %s", Path(path).resolve())
    print(path)
    return 0


def _cmd_outcome(args: argparse.Namespace, settings: Settings) -> int:
    registries = _registries(settings)
    processor = CallOutcomeProcessor(registries.dnc, registries.leads, events=registries.events)
    result = processor.process_outcome(args.phone, args.outcome, args.lead_id)
    _print_json(result.to_dict())
    return 0


def _cmd_leads(args: argparse.Namespace, settings: Settings) -> int:
    leads = _registries(settings).leads.list_leads(
        campaign=args.campaign,
        status=args.status,
        search=args.search,
        has_email=args.has_email,
        limit=args.limit,
    )
    _print_json([lead.to_dict() for lead in leads])
    return 0


def _cmd_status(args: argparse.Namespace, settings: Settings) -> int:
    lead = _registries(settings).leads.update_status(args.lead_id, args.status, args.notes)
    _print_json(lead.to_dict())
    return 0


def _cmd_logs(args: argparse.Namespace, settings: Settings) -> int:
    events = _registries(settings).events
    if args.jobs:
        _print_json(events.jobs()[: args.limit])
        return 0
    records = events.errors()[: args.limit] if args.errors else events.events(args.limit)
    _print_json([record.to_dict() for record in records])
    return 0


_HANDLERS: Dict[str, Handler] = {
    "dnc": _cmd_dnc,
    "stats": _cmd_stats,
    "leads": _cmd_leads,
    "status": _cmd_status,
    "logs": _cmd_logs,
    "health": _cmd_health,
    "campaigns": _cmd_campaigns,
    "import": _cmd_import,
    "scrape": _cmd_scrape,
    "extract-email": _cmd_extract_email,
    "extract-emails": _cmd_extract_emails,
    "export": _cmd_export,
    "outcome": _cmd_outcome,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    if not args.command:
        parser.print_help()
        return 2

    try:
        settings = load_settings(args.config)
    except ConfigurationError as exc:
        logging.error("%s", exc)
        return 1
    if args.data_dir:
        settings.data_dir = Path(args.data_dir)

    try:
        return _HANDLERS[args.command](args, settings)
    except LeadNotFoundError as exc:
        logging.error("Lead %s not found", exc.args[0])
        return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
