"""
KPI Copilot main entry point.

Usage:
    python -m kpi_copilot --help
    python -m kpi_copilot query "..." ["..."]   # Run one or more queries in one conversation
    python -m kpi_copilot stats                 # Print graph statistics
    python -m kpi_copilot report [--kpi ID]     # Print an analysis report
    python -m kpi_copilot evaluate              # Evaluate the query parser
    python -m kpi_copilot serve                 # Start API server
"""
import argparse
import json
import sys
from loguru import logger

from kpi_copilot.config import settings


def main():
    parser = argparse.ArgumentParser(
        description="KPI Copilot - chat-style analysis of the KPI traceability graph"
    )
    parser.add_argument("--graph", default=None, help="JSON graph payload (defaults to the bundled dataset)")
    parser.add_argument("--log-level", default=None, help="Log level (defaults to COPILOT_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Query command
    query_parser = subparsers.add_parser("query", help="Run queries as one conversation")
    query_parser.add_argument("text", nargs="+", help="Query text")
    query_parser.add_argument("--show-nodes", action="store_true", help="Print highlighted node IDs")

    # Stats command
    subparsers.add_parser("stats", help="Print graph statistics")

    # Report command
    report_parser = subparsers.add_parser("report", help="Print an analysis report")
    report_parser.add_argument("--kpi", default=None, help="KPI ID for a single-KPI report")
    report_parser.add_argument("--format", choices=["markdown", "json"], default="markdown")
    report_parser.add_argument("--output", default=None, help="Write the report to a file")

    # Evaluate command
    eval_parser = subparsers.add_parser("evaluate", help="Evaluate the query parser")
    eval_parser.add_argument("--test-file", default=None, help="JSONL test cases (defaults to built-in cases)")
    eval_parser.add_argument("--output", default=None, help="Save the report as JSON")
    eval_parser.add_argument("--limit", type=int, default=None)

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the FastAPI server")
    serve_parser.add_argument("--host", default=settings.api_host, help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=settings.api_port, help="Port to bind to")

    args = parser.parse_args()
    configure_logging(args.log_level or settings.log_level)

    if args.command == "query":
        run_query(args)
    elif args.command == "stats":
        print_stats(args)
    elif args.command == "report":
        run_report(args)
    elif args.command == "evaluate":
        run_evaluation(args)
    elif args.command == "serve":
        start_server(args)
    else:
        parser.print_help()


def configure_logging(level: str):
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def build_store(args):
    from kpi_copilot.data import load_default_graph
    from kpi_copilot.engine import GraphStore

    nodes, edges = load_default_graph(args.graph or settings.graph_file)
    return GraphStore(nodes, edges)


def run_query(args):
    """Run queries through one pipeline so references resolve across them."""
    from kpi_copilot.agents.graph import create_graph

    graph = create_graph(build_store(args))

    for text in args.text:
        logger.info(f"Processing query: {text}")
        result = graph.invoke(text, thread_id="cli")
        response = result.get("response") or {}
        parsed = result.get("parsed_query") or {}

        print("\n" + "=" * 60)
        print(f"QUERY: {text}  [{parsed.get('intent')}]")
        print("=" * 60)
        print(response.get("content", "No response generated"))

        if args.show_nodes and response.get("nodes"):
            print("\n" + "-" * 60)
            print(f"HIGHLIGHT ({len(response['nodes'])} nodes, {len(response.get('edges') or [])} edges):")
            print("-" * 60)
            print(", ".join(response["nodes"]))


def print_stats(args):
    from kpi_copilot.analysis import Analyzer

    store = build_store(args)
    analyzer = Analyzer(store)

    stats = store.calculate_stats()
    stats["achievement"] = analyzer.calculate_achievement_stats().to_dict()
    stats["model_coverage"] = analyzer.calculate_model_coverage_stats().to_dict()
    print(json.dumps(stats, ensure_ascii=False, indent=2))


def run_report(args):
    from kpi_copilot.reports import ReportGenerator

    reports = ReportGenerator(build_store(args))

    if args.kpi:
        report = reports.generate_kpi_report(args.kpi)
        if report is None:
            logger.error(f"Not a KPI node: {args.kpi}")
            sys.exit(1)
    else:
        report = reports.generate_full_report()

    text = reports.export_to_json(report) if args.format == "json" else reports.export_to_markdown(report)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(text)
        logger.info(f"Report saved to {args.output}")
    else:
        print(text)


def run_evaluation(args):
    from kpi_copilot.testing import IntentTester

    tester = IntentTester()
    report = tester.run_tests(args.test_file, limit=args.limit)
    tester.print_report(report)
    if args.output:
        tester.save_report(report, args.output)


def start_server(args):
    """Start the FastAPI server."""
    import uvicorn
    from kpi_copilot.api.main import create_app

    logger.info(f"Starting KPI Copilot API on {args.host}:{args.port}")

    uvicorn.run(create_app(args.graph), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
