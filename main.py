"""
Vendor Review Aggregator command line.

  python main.py demo [--vendor ID] [--json]   report for one vendor (mock catalog)
  python main.py api                           FastAPI server
  python main.py dashboard                     Streamlit reviews screen
  python main.py test                          pytest suite
"""

import argparse
import json
import logging
import os
import subprocess
import sys

ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, ROOT)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("main")


def print_report(vendor_id, result):
    from agents.statistics import filter_options, rating_breakdown

    stats = result.statistics
    width = 64
    print("\n" + "=" * width)
    print(f"  {vendor_id}: {stats.average_rating:.1f} stars, {stats.performance_tier}")
    print(f"  {stats.total_reviews} reviews from {stats.total_customers} customers")
    print("=" * width)
    for row in rating_breakdown(stats):
        bar = "#" * int(row["percentage"] // 2)
        print(f"  {row['stars']}*  {row['count']:>4}  {row['percentage']:>5.1f}%  {bar}")
    print("\n  Filters: " + ", ".join(f"{o['label']} ({o['count']})" for o in filter_options(stats)))
    print("\n  Latest:")
    for r in result.reviews:
        print(f"    {r.review.created_at:%Y-%m-%d}  {r.rating}*  [{r.listing.name}]  "
              f"{r.review.comment or 'No comment provided'}")


def demo(vendor_id="vendor-demo", as_json=False):
    """Latest reviews plus a walk through every 5-star page, like the reviews screen does."""
    from agents.sources import MockCatalog
    from api.routes import to_response
    from utils.accumulator import ReviewAccumulator
    from utils.pipeline import get_filtered_aggregate, get_latest_reviews

    catalog = MockCatalog()
    latest = get_latest_reviews(vendor_id, directory=catalog, source=catalog)
    if as_json:
        print(json.dumps(to_response(latest), indent=2))
        return latest
    print_report(vendor_id, latest)

    screen = ReviewAccumulator(
        lambda rating_filter, page, limit: get_filtered_aggregate(
            vendor_id, rating_filter, page, limit, directory=catalog, source=catalog,
        ),
        limit=5,
    )
    screen.change_filter("5")
    while screen.load_more():
        pass
    logger.info(f"5-star reviews accumulated over {screen.state.current_page} page(s): "
                f"{len(screen.items)} ({screen.view_state})")
    return latest


def start_api():
    import uvicorn
    from config.settings import settings
    uvicorn.run("api.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)


def start_dashboard():
    app_path = os.path.join(ROOT, "dashboard", "app.py")
    subprocess.run([sys.executable, "-m", "streamlit", "run", app_path], check=True)


def run_tests():
    sys.exit(subprocess.run([sys.executable, "-m", "pytest", "tests", "-q"], cwd=ROOT).returncode)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Vendor Review Aggregator")
    sub = parser.add_subparsers(dest="command")
    demo_cmd = sub.add_parser("demo", help="aggregate one vendor from the mock catalog")
    demo_cmd.add_argument("--vendor", default="vendor-demo")
    demo_cmd.add_argument("--json", action="store_true", help="print the API response body")
    sub.add_parser("api", help="run the FastAPI server")
    sub.add_parser("dashboard", help="run the Streamlit reviews screen")
    sub.add_parser("test", help="run the test suite")
    args = parser.parse_args(argv)

    if args.command == "api":
        start_api()
    elif args.command == "dashboard":
        start_dashboard()
    elif args.command == "test":
        run_tests()
    else:
        demo(getattr(args, "vendor", "vendor-demo"), getattr(args, "json", False))


if __name__ == "__main__":
    main()
