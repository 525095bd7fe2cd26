# An example script running every algorithm on the compressor network and comparing them.
from gas_optimizer import OptimizationSettings
from gas_optimizer.data.providers.synthetic import create_compressor_network
from gas_optimizer.services.comparison import compare_optimizations, recommend_algorithm, run_multiple_optimizations
from gas_optimizer.utils.reporting import generate_report
from gas_optimizer.utils.serialization import dumps
from gas_optimizer.utils.visualization import compare_algorithms


def run_comparison():
    print("Running algorithm comparison example...")

    network = create_compressor_network()
    settings = OptimizationSettings(enable_pressure_constraints=True, enable_compressor_stations=True)

    recommendation = recommend_algorithm(network)
    print(f"Recommended: {recommendation['algorithm']} ({recommendation['reason']})")

    results = run_multiple_optimizations(network, settings)
    for result in results.values():
        print(generate_report(result))

    print("\n--- Comparison ---")
    print(dumps(compare_optimizations(results)))

    compare_algorithms(results, path="algorithm_comparison.png")
    print("Comparison chart saved to algorithm_comparison.png")


if __name__ == "__main__":
    run_comparison()
