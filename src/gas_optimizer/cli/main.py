# The main entry point for the command-line interface (CLI).
import argparse
import logging
import sys

from ..config import load_config
from ..data.providers.synthetic import create_sample_network, load_default_network
from ..domain.models import OptimizationSettings, OptimizationStatus
from ..domain.pipeline import PipelineNetwork
from ..services.comparison import compare_optimizations, run_multiple_optimizations
from ..services.optimization_service import OptimizationEngine
from ..utils.reporting import export_csv, generate_report
from ..utils.serialization import dumps, export_network, load_settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gas-optimizer", description="Gas pipeline network optimization")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("-c", "--config", help="Engine configuration JSON file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("algorithms", help="List available algorithms")

    validate = sub.add_parser("validate", help="Validate a network file")
    validate.add_argument("network", nargs="?", help="Network JSON file (default: config.json, else the built-in sample)")

    optimize = sub.add_parser("optimize", help="Optimize a network file")
    optimize.add_argument("network", nargs="?", help="Network JSON file (default: config.json, else the built-in sample)")
    optimize.add_argument("-a", "--algorithm", default=None, help="Algorithm name (default: settings objective)")
    optimize.add_argument("-s", "--settings", help="Settings JSON file")
    optimize.add_argument("--pressure", action="store_true", help="Enable pressure constraints")
    optimize.add_argument("--compressors", action="store_true", help="Enable compressor stations")
    optimize.add_argument("--fuel", action="store_true", help="Subtract compressor fuel from throughput")
    optimize.add_argument("--cost", action="store_true", help="Prefer cheaper segments")
    optimize.add_argument("--time-limit", type=float, help="Solver time limit in seconds")
    optimize.add_argument("-o", "--output", help="Write the result JSON here")
    optimize.add_argument("--report", action="store_true", help="Print a text report instead of JSON")
    optimize.add_argument("--csv", help="Write segment flows as CSV")
    optimize.add_argument("--plot", help="Save result charts to this image file")

    compare = sub.add_parser("compare", help="Run every algorithm and compare the results")
    compare.add_argument("network", nargs="?", help="Network JSON file (default: config.json, else the built-in sample)")
    compare.add_argument("-s", "--settings", help="Settings JSON file")

    sample = sub.add_parser("sample", help="Print or save the built-in sample network")
    sample.add_argument("-o", "--output", help="Write the network JSON here")
    return parser


def _load_network(path):
    if path:
        return PipelineNetwork.load_from_json(path)
    return load_default_network()


def _settings(args) -> OptimizationSettings:
    settings = load_settings(args.settings) if args.settings else OptimizationSettings()
    updates = {}
    if args.pressure:
        updates["enable_pressure_constraints"] = True
    if args.compressors:
        updates["enable_compressor_stations"] = True
    if args.fuel:
        updates["enable_fuel_consumption"] = True
    if args.cost:
        updates["enable_cost_optimization"] = True
    if args.time_limit is not None:
        updates["time_limit"] = args.time_limit
    return settings.model_copy(update=updates)


def main(argv=None) -> int:
    """
    Main function to run the selected command and print results.
    Exit status is 0 on success, 1 when the network is invalid or the
    optimization does not produce a feasible result.
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    engine = OptimizationEngine(load_config(args.config) if args.config else None)

    if args.command == "algorithms":
        for info in engine.list_algorithms():
            print(f"{info.name}: {info.description}")
        return 0

    if args.command == "sample":
        text = export_network(create_sample_network())
        if args.output:
            with open(args.output, "w", encoding="utf-8") as handle:
                handle.write(text)
            logger.info(f"Sample network saved to {args.output}")
        else:
            print(text)
        return 0

    network = _load_network(args.network)

    if args.command == "validate":
        validation = engine.validate_network(network)
        print(dumps(validation))
        return 0 if validation.is_valid else 1

    if args.command == "compare":
        settings = load_settings(args.settings) if args.settings else None
        results = run_multiple_optimizations(network, settings, engine=engine)
        print(dumps(compare_optimizations(results)))
        return 0 if any(r.succeeded for r in results.values()) else 1

    settings = _settings(args)
    algorithm = args.algorithm or settings.objective_function.value
    run = engine.run(algorithm, network, settings)
    result = run.result

    if args.output:
        with open(args.output, "w", encoding="utf-8") as handle:
            handle.write(dumps(result))
        logger.info(f"Result saved to {args.output}")
    if args.csv:
        export_csv(result, run.network or network, args.csv)
        logger.info(f"Segment flows saved to {args.csv}")
    if args.plot:
        from ..utils.visualization import visualize_result
        visualize_result(result, run.network or network, path=args.plot)
        logger.info(f"Charts saved to {args.plot}")

    if args.report:
        print(generate_report(result))
    elif not args.output:
        print("\n--- Optimization Result (JSON) ---")
        print(dumps(result))

    return 0 if result.status in (OptimizationStatus.OPTIMAL, OptimizationStatus.FEASIBLE) else 1


if __name__ == "__main__":
    sys.exit(main())
