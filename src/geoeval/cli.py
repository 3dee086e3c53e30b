"""Command-line interface for GeoEval."""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .core.config import settings
from .core.constants import FileConstants
from .core.evaluation import EvaluationRunner
from .core.metrics import MetricsConsumer
from .core.models import Provider
from .core.state import DashboardState, Status, hydrate_from_snapshot, stats
from .services.api_client import ApiError, BackendClient
from .ui import run_streamlit_app
from .utils.data_prep import build_report_file

logger = logging.getLogger(__name__)


def setup_logging():
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=FileConstants.LOG_FORMAT,
    )


def load_dashboard(client: BackendClient, project_id: str) -> DashboardState:
    """Dashboard state for a project, including any saved questions."""
    project = client.get_project(project_id)
    state = DashboardState(
        domain=project.domain,
        nation=project.nation or settings.default_nation,
        state=project.state or "",
        company_id=project.company_id,
        project_id=project.id or project_id,
    )
    return hydrate_from_snapshot(state, client.get_prompt_questions(project_id))


def cmd_companies(args, client):
    """List companies."""
    companies = client.get_companies()
    if not companies:
        print("No companies yet.")
        return
    for company in companies:
        website = f" ({company.website})" if company.website else ""
        print(f"{company.id}  {company.name}{website}")


def cmd_add_company(args, client):
    company = client.create_company(args.name, description=args.description, website=args.website)
    print(f"Created company {company.id}: {company.name}")


def cmd_delete_company(args, client):
    client.delete_company(args.company_id)
    print(f"Deleted company {args.company_id}")


def cmd_projects(args, client):
    """List projects of a company."""
    projects = client.get_projects(args.company_id)
    if not projects:
        print("No projects yet.")
        return
    for project in projects:
        location = ", ".join(p for p in (project.state, project.nation) if p)
        print(f"{project.id}  {project.name}  {project.domain}  [{location}]")


def cmd_add_project(args, client):
    project = client.create_project(
        args.company_id, args.name, description=args.description,
        domain=args.domain, nation=args.nation, state=args.state,
    )
    print(f"Created project {project.id}: {project.name}")


def cmd_delete_project(args, client):
    client.delete_project(args.project_id)
    print(f"Deleted project {args.project_id}")


def cmd_evaluate(args, client):
    """Run the full pipeline for a project without the UI."""
    state = load_dashboard(client, args.project_id)
    if args.context:
        state = replace(state, query_context=args.context)

    def on_update(s):
        logger.debug(f"{s.status.value} {s.progress}%")

    runner = EvaluationRunner(client, on_update=on_update, default_provider=Provider(args.provider))

    if args.resume and state.status in (Status.QUESTIONS_READY, Status.COMPLETED):
        print(f"Resuming {len(state.results)} saved questions for {state.domain}...")
    else:
        print(f"Analyzing {state.domain} ({state.state or settings.location_fallback}, {state.nation})...")
        state = runner.start(state, review_first=True)
        if state.status == Status.ERROR or state.error:
            print(f"Analysis failed: {state.error}")
            sys.exit(1)
        print(f"Brand: {state.brand_name} - {len(state.results)} questions generated")

    if args.review_first:
        for r in state.results:
            print(f"  [{r.category}] {r.question}")
        print("Questions are ready; rerun with --resume to ask them.")
        return

    state = runner.run_all(state)
    for r in state.results:
        print(f"  {r.status_label.upper():8} [{r.category}] {r.question}")

    summary = stats(state)
    print(f"\nVisibility: {summary['score']}% ({summary['found_count']}/{summary['total']} found)")


def cmd_metrics(args, client):
    """Show or recalculate the metrics snapshot of a project."""
    state = load_dashboard(client, args.project_id)
    if not state.question_set_id:
        print("This project has no questions yet.")
        sys.exit(1)

    consumer = MetricsConsumer(client)
    if args.recalculate:
        state = consumer.recalculate(state)
    elif state.status == Status.COMPLETED:
        state = consumer.check(state)
    else:
        print("Answer every question before fetching metrics.")
        sys.exit(1)

    metrics = state.metrics
    if metrics is None:
        print("No metrics calculated yet. Run with --recalculate.")
        return

    organic = metrics.brand_agnostic_metrics
    print(f"Metrics for {metrics.brand_name} ({metrics.total_prompts} prompts)")
    if state.metrics_date:
        print(f"Last calculated: {state.metrics_date:%Y-%m-%d %H:%M}")
    print(f"  Organic mention rate:    {organic.brand_mention_rate:.1f}%")
    print(f"  Top 3 position rate:     {organic.top_3_position_rate:.1f}%")
    print(f"  Recommendation rate:     {organic.recommendation_rate:.1f}%")
    print(f"  Zero-mention prompts:    {organic.zero_mention_count}")
    for name, count in sorted(metrics.competitor_mentions.items(), key=lambda c: -c[1])[:5]:
        print(f"  Competitor {name}: {count}")


def cmd_export(args, client):
    """Write the spreadsheet report of a project."""
    state = load_dashboard(client, args.project_id)
    metrics = None
    if not args.simple and state.question_set_id:
        metrics = client.get_generated_metrics(state.question_set_id)

    built = build_report_file(
        state.results, metrics, state.brand_name, state.domain, state.state, state.nation, simple=args.simple,
    )
    if built is None:
        print("Nothing to export: the project needs answered questions and a metrics snapshot.")
        sys.exit(1)

    filename, content = built
    output = Path(args.out) if args.out else Path(filename)
    if output.is_dir():
        output = output / filename
    output.write_bytes(content)
    print(f"Report written to {output}")


def cmd_ui(args, client):
    """UI command."""
    print("Launching GeoEval UI...")
    code = run_streamlit_app()
    if code:
        sys.exit(code)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="GeoEval - AI assistant visibility for local businesses")
    parser.add_argument('--api', help='Backend base URL (defaults to settings)')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('companies', help='List companies')

    add_company_parser = subparsers.add_parser('add-company', help='Create a company')
    add_company_parser.add_argument('name', help='Company name')
    add_company_parser.add_argument('--description', help='Short description')
    add_company_parser.add_argument('--website', help='Company website')

    delete_company_parser = subparsers.add_parser('delete-company', help='Delete a company')
    delete_company_parser.add_argument('company_id')

    projects_parser = subparsers.add_parser('projects', help='List projects of a company')
    projects_parser.add_argument('company_id')

    add_project_parser = subparsers.add_parser('add-project', help='Create a project')
    add_project_parser.add_argument('company_id')
    add_project_parser.add_argument('name', help='Project name')
    add_project_parser.add_argument('--domain', help='Website domain, e.g. acme.com')
    add_project_parser.add_argument('--nation', default=settings.default_nation, help='Nation')
    add_project_parser.add_argument('--state', help='State or region (optional)')
    add_project_parser.add_argument('--description', help='Short description')

    delete_project_parser = subparsers.add_parser('delete-project', help='Delete a project')
    delete_project_parser.add_argument('project_id')

    evaluate_parser = subparsers.add_parser('evaluate', help='Analyze a project website and ask every question')
    evaluate_parser.add_argument('project_id')
    evaluate_parser.add_argument('--context', help='Free-text description of the business')
    evaluate_parser.add_argument('--provider', choices=[p.value for p in Provider], default=settings.default_provider)
    evaluate_parser.add_argument('--review-first', action='store_true', help='Stop after generating questions')
    evaluate_parser.add_argument('--resume', action='store_true', help='Ask the saved unanswered questions')

    metrics_parser = subparsers.add_parser('metrics', help='Show visibility metrics')
    metrics_parser.add_argument('project_id')
    metrics_parser.add_argument('--recalculate', action='store_true', help='Compute a fresh snapshot')

    export_parser = subparsers.add_parser('export', help='Export the spreadsheet report')
    export_parser.add_argument('project_id')
    export_parser.add_argument('--out', help='Output file or directory')
    export_parser.add_argument('--simple', action='store_true', help='Single-sheet report without metrics')

    subparsers.add_parser('ui', help='Launch web UI')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    setup_logging()
    client = BackendClient(base_url=args.api)

    commands = {
        'companies': cmd_companies,
        'add-company': cmd_add_company,
        'delete-company': cmd_delete_company,
        'projects': cmd_projects,
        'add-project': cmd_add_project,
        'delete-project': cmd_delete_project,
        'evaluate': cmd_evaluate,
        'metrics': cmd_metrics,
        'export': cmd_export,
        'ui': cmd_ui,
    }

    try:
        commands[args.command](args, client)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
    except (ApiError, ValueError) as e:
        logger.error(f"Command failed: {e}")
        print(f"Error: {e}")
        sys.exit(1)
