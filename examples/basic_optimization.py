# An example script demonstrating a basic optimization run.
from gas_optimizer import OptimizationSettings, run_optimization
from gas_optimizer.data.providers.synthetic import create_sample_network
from gas_optimizer.utils.serialization import dumps


def run_basic_optimization():
    """
    Runs a basic optimization and prints the results.
    """
    print("Running basic optimization example...")

    # 1. Build the sample network
    network = create_sample_network()

    # 2. Choose the optimization settings
    settings = OptimizationSettings(
        enable_pressure_constraints=True,
        objective_function="MaximizeThroughput",
        time_limit=60,
    )

    # 3. Run the optimization service
    optimization_result = run_optimization(network, settings)

    # 4. Print the results
    print("\n--- Optimization Result (JSON) ---")
    print(dumps(optimization_result))

    # You can access specific results like this:
    print(f"\nTotal Throughput: {optimization_result.metrics.total_throughput}")


if __name__ == "__main__":
    run_basic_optimization()
