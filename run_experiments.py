# run_experiments.py

import numpy as np
from tqdm import tqdm
from order_stats_tree import OrderStatsTree
from splay_tree import OrderedSplayTree
import pandas as pd
import os
import sys
import json
import logging
import gc
import time
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from typing import Dict, List, Optional, Tuple
import seaborn as sns
import scipy.stats as stats
import psutil
import cProfile
import pstats
from io import StringIO

# ==========================
# 1. Logging and Configuration
# ==========================

logger = logging.getLogger('ExperimentLogger')


def setup_logging(log_file: str):
    """
    Sets up logging to both console and file with detailed formatting.

    Parameters:
        log_file (str): Path to the log file.
    """
    logger.setLevel(logging.DEBUG)  # Capture all levels

    # Formatter for detailed logs
    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

    # Console handler for INFO level and above
    ch = logging.StreamHandler()
    ch.setLevel(logging.INFO)
    ch.setFormatter(formatter)

    # File handler for DEBUG level and above
    fh = logging.FileHandler(log_file)
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)

    # Avoid duplicate logs
    if not logger.handlers:
        logger.addHandler(ch)
        logger.addHandler(fh)

    return logger


DEFAULT_CONFIG = {
    'results_dir': 'results',
    'key_space_size': 1000,
    'n_accesses': 5000,
    'patterns': ['uniform', 'skewed', 'zipfian', 'temporal', 'random_walk', 'bursty', 'sequential'],
    'insertion_order': 'shuffled',  # 'sorted' degenerates the plain tree into a chain
    'seed': 42,
    'stability_runs': 5,
    'profile_accesses': 1000,
}

TREE_CLASSES = {
    'order_stats': OrderStatsTree,
    'splay': OrderedSplayTree,
}


def load_config(filepath: Optional[str] = None) -> dict:
    """
    Loads experiment configuration, overlaying a JSON file onto DEFAULT_CONFIG.

    Parameters:
        filepath (str): Optional path to a JSON file with overrides.

    Returns:
        dict: The merged configuration.
    """
    config = dict(DEFAULT_CONFIG)
    if filepath is None:
        return config
    with open(filepath, 'r') as f:
        overrides = json.load(f)
    unknown = sorted(set(overrides) - set(DEFAULT_CONFIG))
    if unknown:
        raise ValueError(f"Unknown configuration keys in '{filepath}': {unknown}")
    config.update(overrides)
    if config['insertion_order'] not in ('sorted', 'shuffled'):
        raise ValueError(f"insertion_order must be 'sorted' or 'shuffled', got {config['insertion_order']!r}")
    logger.info(f"Configuration loaded from '{filepath}'.")
    return config

# ==========================
# 2. Utility Functions
# ==========================

def _to_builtin(obj):
    """JSON fallback for numpy scalars and arrays."""
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def save_results(data, filepath: str):
    """
    Saves data to a JSON file.

    Parameters:
        data (dict): The data to save.
        filepath (str): The path to the JSON file.
    """
    try:
        with open(filepath, 'w') as f:
            json.dump(data, f, indent=4, default=_to_builtin)
        logger.info(f"Results saved successfully to '{filepath}'.")
    except (OSError, TypeError) as e:
        logger.error(f"Failed to save results to '{filepath}': {e}")
        raise

# ==========================
# 3. Tree Construction and Access Measurement
# ==========================

def build_tree(tree_class, size: int, insertion_order: str = 'shuffled', rng=None):
    """
    Builds a tree holding keys 0..size-1.

    Parameters:
        tree_class (class): The tree class to instantiate.
        size (int): Number of keys.
        insertion_order (str): 'sorted' or 'shuffled'.
        rng (np.random.Generator): Random source for shuffling.

    Returns:
        OrderStatsTree: The populated tree.
    """
    rng = rng if rng is not None else np.random.default_rng()
    keys = np.arange(size)
    if insertion_order == 'shuffled':
        keys = rng.permutation(keys)
    tree = tree_class()
    for key in tqdm(keys.tolist(), desc=f"Building {tree_class.__name__}", leave=False):
        tree.insert(key, f"value-{key}")
    # Construction rotations are not part of the access cost
    tree.total_rotations = 0
    return tree


def measure_access_costs(tree, access_pattern: List[int]) -> np.ndarray:
    """
    Accesses every key of the pattern in turn, recording the depth of the key just
    before it is accessed (the number of edges a lookup has to follow).

    Parameters:
        tree (OrderStatsTree): The tree to access.
        access_pattern (List[int]): The sequence of keys to access.

    Returns:
        np.ndarray: Per-access depth.
    """
    costs = np.empty(len(access_pattern), dtype=np.int64)
    for i, key in enumerate(access_pattern):
        depth = tree.depth(key)
        # A miss costs a full descent
        costs[i] = depth if depth is not None else tree.height() + 1
        tree.get(key)
    return costs


def summarize_costs(tree, costs: np.ndarray) -> dict:
    """
    Collects the per-run metrics reported by every analysis.

    Parameters:
        tree (OrderStatsTree): The tree after the run.
        costs (np.ndarray): Per-access depths from measure_access_costs.

    Returns:
        dict: Summary metrics.
    """
    depths = tree.node_depths()
    n_accesses = len(costs)
    return {
        'avg_access_depth': float(np.mean(costs)) if n_accesses else 0.0,
        'max_access_depth': int(np.max(costs)) if n_accesses else 0,
        'final_avg_depth': float(np.mean(depths)) if depths else 0.0,
        'final_height': tree.height(),
        'total_rotations': tree.total_rotations,
        'rotations_per_access': tree.total_rotations / n_accesses if n_accesses else 0.0,
    }

# ==========================
# 4. Access Patterns
# ==========================

def generate_access_pattern(pattern_type: str, size: int, n: int, rng=None) -> List[int]:
    """
    Generates different types of access patterns for experimentation.

    Parameters:
        pattern_type (str): Type of access pattern to generate.
        size (int): Range of keys (0 to size-1).
        n (int): Number of accesses to generate.
        rng (np.random.Generator): Random source.

    Returns:
        List[int]: List of keys to access.
    """
    rng = rng if rng is not None else np.random.default_rng()
    logger.debug(f"Generating access pattern: {pattern_type}, Size: {size}, Number of accesses: {n}")
    keys = np.arange(size)
    if pattern_type == 'uniform':
        pattern = rng.choice(keys, n)
    elif pattern_type == 'skewed':
        try:
            weights = rng.zipf(2, size).astype(np.float64)
            probabilities = weights / weights.sum()
            pattern = rng.choice(keys, n, p=probabilities)
        except ValueError as e:
            logger.error(f"Error generating skewed pattern: {e}")
            pattern = rng.choice(keys, n)
    elif pattern_type == 'zipfian':
        # Rank-based Zipf law over a random assignment of ranks to keys
        weights = 1.0 / np.arange(1, size + 1) ** 1.2
        probabilities = weights / weights.sum()
        pattern = rng.choice(rng.permutation(keys), n, p=probabilities)
    elif pattern_type == 'temporal':
        access_pattern = []
        recent_items = []
        for _ in range(n):
            if recent_items and rng.random() < 0.7:
                access_pattern.append(recent_items[rng.integers(len(recent_items))])
            else:
                key = int(rng.integers(0, size))
                access_pattern.append(key)
                recent_items.append(key)
                if len(recent_items) > 100:
                    recent_items.pop(0)
        pattern = np.array(access_pattern, dtype=np.int64)
    elif pattern_type == 'cluster-based':
        cluster_center = int(rng.integers(0, size))
        low, high = max(0, cluster_center - 10), min(size, cluster_center + 10)
        pattern = rng.choice(keys[low:high], n)
    elif pattern_type == 'random_walk':
        access_pattern = [int(rng.integers(0, size))]
        for _ in range(n - 1):
            next_key = access_pattern[-1] + int(rng.choice([-1, 1]))
            access_pattern.append(max(0, min(size - 1, next_key)))
        pattern = np.array(access_pattern[:n], dtype=np.int64)
    elif pattern_type == 'bursty':
        burst_prob = 0.8
        access_pattern = []
        last_accessed = None
        for _ in range(n):
            if last_accessed is not None and rng.random() < burst_prob:
                access_pattern.append(last_accessed)
            else:
                last_accessed = int(rng.integers(0, size))
                access_pattern.append(last_accessed)
        pattern = np.array(access_pattern, dtype=np.int64)
    elif pattern_type == 'sequential':
        pattern = np.arange(n) % size
    else:
        logger.warning(f"Unknown pattern type: {pattern_type}. Defaulting to uniform pattern.")
        pattern = rng.choice(keys, n)
    logger.debug(f"Access pattern generated with {len(pattern)} accesses.")
    return [int(key) for key in pattern]

# ==========================
# 5. Comparative Analyses
# ==========================

def robustness_analysis(config: dict, rng=None) -> Tuple[pd.DataFrame, Dict[Tuple[str, str], np.ndarray]]:
    """
    Runs every tree class against every configured access pattern.

    Parameters:
        config (dict): Experiment configuration.
        rng (np.random.Generator): Random source.

    Returns:
        Tuple[pd.DataFrame, dict]: One row of metrics per (pattern, tree) and the raw
        per-access costs keyed by (pattern, tree).
    """
    rng = rng if rng is not None else np.random.default_rng(config['seed'])
    logger.info("Conducting robustness analysis.")
    rows = []
    costs_by_run = {}
    for pattern in config['patterns']:
        logger.info(f"Testing robustness with pattern: {pattern}")
        access_pattern = generate_access_pattern(pattern, config['key_space_size'], config['n_accesses'], rng)
        build_seed = int(rng.integers(0, 2 ** 32))
        for name, tree_class in TREE_CLASSES.items():
            # Both trees start from the same insertion order
            tree = build_tree(tree_class, config['key_space_size'], config['insertion_order'],
                              np.random.default_rng(build_seed))
            costs = measure_access_costs(tree, access_pattern)
            metrics = summarize_costs(tree, costs)
            rows.append({'pattern': pattern, 'tree': name, **metrics})
            costs_by_run[(pattern, name)] = costs
            logger.info(f"Robustness Results for {pattern}/{name}: "
                        f"Avg Access Depth = {metrics['avg_access_depth']:.4f}, "
                        f"Final Height = {metrics['final_height']}, "
                        f"Total Rotations = {metrics['total_rotations']}")
            # Clean up
            del tree
            gc.collect()
    logger.info("Robustness analysis completed.")
    return pd.DataFrame(rows), costs_by_run


def statistical_significance_tests(costs_by_run: Dict[Tuple[str, str], np.ndarray]) -> dict:
    """
    Welch's t-test of per-access depth, splay tree against the plain tree, per pattern.

    Parameters:
        costs_by_run (dict): Per-access costs keyed by (pattern, tree).

    Returns:
        dict: Statistical test results per pattern.
    """
    logger.info("Performing statistical significance tests.")
    stats_results = {}
    patterns = sorted({pattern for pattern, _ in costs_by_run})
    for pattern in patterns:
        splay_costs = costs_by_run.get((pattern, 'splay'))
        plain_costs = costs_by_run.get((pattern, 'order_stats'))
        if splay_costs is None or plain_costs is None:
            logger.warning(f"Skipping significance test for {pattern}: missing a tree variant.")
            continue
        t_stat, p_value = stats.ttest_ind(splay_costs, plain_costs, equal_var=False)
        stats_results[pattern] = {
            'splay_mean_depth': float(np.mean(splay_costs)),
            'order_stats_mean_depth': float(np.mean(plain_costs)),
            't_stat': float(t_stat),
            'p_value': float(p_value),
        }
        logger.debug(f"Statistical Test for {pattern}: t_stat = {t_stat:.4f}, p_value = {p_value:.4f}")
    logger.info("Statistical significance tests completed.")
    return stats_results


def runtime_performance_measurement(tree_class, size: int, access_pattern: List[int],
                                    insertion_order: str = 'shuffled', rng=None) -> float:
    """
    Measures the runtime of building a tree and running an access pattern on it.

    Parameters:
        tree_class (class): The tree class to instantiate.
        size (int): Number of keys.
        access_pattern (List[int]): The sequence of keys to access.
        insertion_order (str): 'sorted' or 'shuffled'.
        rng (np.random.Generator): Random source for shuffling.

    Returns:
        float: Total runtime in seconds.
    """
    logger.info(f"Measuring runtime performance of {tree_class.__name__}.")
    start_time = time.perf_counter()
    tree = build_tree(tree_class, size, insertion_order, rng)
    for key in tqdm(access_pattern, desc="Runtime Measurement", leave=False):
        tree.get(key)
    runtime = time.perf_counter() - start_time
    logger.info(f"Runtime Performance: {runtime:.4f} seconds.")
    return runtime


def memory_usage_analysis(tree_class, size: int, insertion_order: str = 'shuffled', rng=None) -> float:
    """
    Analyzes resident memory growth while building a tree.

    Parameters:
        tree_class (class): The tree class to instantiate.
        size (int): Number of keys.
        insertion_order (str): 'sorted' or 'shuffled'.
        rng (np.random.Generator): Random source for shuffling.

    Returns:
        float: Memory used in MB.
    """
    logger.info(f"Analyzing memory usage of {tree_class.__name__}.")
    gc.collect()
    process = psutil.Process(os.getpid())
    mem_before = process.memory_info().rss / (1024 ** 2)  # in MB
    tree = build_tree(tree_class, size, insertion_order, rng)
    mem_after = process.memory_info().rss / (1024 ** 2)  # in MB
    memory_used = mem_after - mem_before
    logger.info(f"Memory Usage: {memory_used:.4f} MB for {len(tree)} nodes.")
    return memory_used


def profiling_analysis(tree_class, size: int, access_pattern: List[int], report_path: str,
                       insertion_order: str = 'shuffled', rng=None):
    """
    Profiles tree accesses to identify performance bottlenecks.

    Parameters:
        tree_class (class): The tree class to instantiate.
        size (int): Number of keys.
        access_pattern (List[int]): The sequence of keys to access.
        report_path (str): Where to write the pstats report.
        insertion_order (str): 'sorted' or 'shuffled'.
        rng (np.random.Generator): Random source for shuffling.
    """
    logger.info("Starting profiling analysis.")
    tree = build_tree(tree_class, size, insertion_order, rng)

    profiler = cProfile.Profile()
    profiler.enable()
    for key in access_pattern:
        tree.get(key)
    profiler.disable()

    s = StringIO()
    ps = pstats.Stats(profiler, stream=s).sort_stats('cumulative')
    ps.print_stats(10)  # Print top 10 functions

    with open(report_path, 'w') as f:
        f.write(s.getvalue())
    logger.info(f"Profiling analysis completed and report saved as '{report_path}'.")


def stability_over_multiple_runs(tree_class, config: dict, pattern_type: str = 'skewed',
                                 n_runs: int = 5, report_path: Optional[str] = None) -> dict:
    """
    Checks that the mean access depth is consistent across runs with different seeds.

    Parameters:
        tree_class (class): The tree class to instantiate.
        config (dict): Experiment configuration.
        pattern_type (str): Access pattern used in every run.
        n_runs (int): Number of runs to perform.
        report_path (str): Optional text report path.

    Returns:
        dict: Mean and standard deviation of the per-run average access depth.
    """
    logger.info(f"Assessing stability of {tree_class.__name__} over {n_runs} runs.")
    scores = []
    for run in range(1, n_runs + 1):
        rng = np.random.default_rng(config['seed'] + run)
        tree = build_tree(tree_class, config['key_space_size'], config['insertion_order'], rng)
        access_pattern = generate_access_pattern(pattern_type, config['key_space_size'], config['n_accesses'], rng)
        costs = measure_access_costs(tree, access_pattern)
        score = float(np.mean(costs))
        scores.append(score)
        logger.info(f"Run {run}: Avg Access Depth = {score:.4f}")
        # Clean up
        del tree
        gc.collect()

    mean_score = float(np.mean(scores))
    std_score = float(np.std(scores))
    if report_path is not None:
        with open(report_path, 'w') as f:
            f.write(f"Stability of {tree_class.__name__} Over {n_runs} Runs ({pattern_type}):\n")
            f.write(f"Mean Avg Access Depth: {mean_score}\n")
            f.write(f"Standard Deviation: {std_score}\n")
    logger.info(f"Stability assessment completed. Mean Score: {mean_score:.4f}, Std Dev: {std_score:.4f}")
    return {'mean_avg_access_depth': mean_score, 'std_avg_access_depth': std_score, 'scores': scores}

# ==========================
# 6. Visualizations
# ==========================

def amortized_cost_visualization(costs_by_run: Dict[Tuple[str, str], np.ndarray], output_path: str):
    """
    Plots the running mean of access depth, which is where splaying pays off.

    Parameters:
        costs_by_run (dict): Per-access costs keyed by (pattern, tree).
        output_path (str): PNG file to write.
    """
    logger.info("Generating amortized cost visualization.")
    plt.figure(figsize=(10, 6))
    for (pattern, name), costs in sorted(costs_by_run.items()):
        if len(costs) == 0:
            continue
        running_mean = np.cumsum(costs) / np.arange(1, len(costs) + 1)
        plt.plot(running_mean, label=f'{pattern} / {name}',
                 linestyle='-' if name == 'splay' else '--')
    plt.title('Amortized Access Depth')
    plt.xlabel('Number of Accesses')
    plt.ylabel('Mean Depth So Far')
    plt.legend(fontsize='small', ncol=2)
    plt.tight_layout()
    plt.savefig(output_path)
    plt.close()
    logger.info(f"Amortized cost visualization saved as '{output_path}'.")


def depth_distribution_visualization(costs_by_run: Dict[Tuple[str, str], np.ndarray], output_path: str):
    """
    Box plot of per-access depth for each pattern and tree.

    Parameters:
        costs_by_run (dict): Per-access costs keyed by (pattern, tree).
        output_path (str): PNG file to write.
    """
    logger.info("Generating depth distribution visualization.")
    frames = [
        pd.DataFrame({'pattern': pattern, 'tree': name, 'access_depth': costs})
        for (pattern, name), costs in costs_by_run.items()
    ]
    df = pd.concat(frames, ignore_index=True)
    plt.figure(figsize=(12, 6))
    sns.boxplot(data=df, x='pattern', y='access_depth', hue='tree', showfliers=False)
    plt.title('Access Depth by Pattern')
    plt.tight_layout()
    plt.savefig(output_path)
    plt.close()
    logger.info(f"Depth distribution visualization saved as '{output_path}'.")

# ==========================
# 7. Main Execution Flow
# ==========================

def main(argv: Optional[List[str]] = None):
    """
    Main function to run all experiments and generate visualizations and logs.
    Usage: run_experiments.py [config.json]
    """
    argv = sys.argv[1:] if argv is None else argv
    config = load_config(argv[0] if argv else None)

    results_dir = config['results_dir']
    visualizations_dir = os.path.join(results_dir, 'visualizations')
    logs_dir = os.path.join(results_dir, 'logs')
    os.makedirs(visualizations_dir, exist_ok=True)
    os.makedirs(logs_dir, exist_ok=True)
    setup_logging(os.path.join(logs_dir, 'experiment.log'))

    logger.info("=== Starting Access Cost Experiments ===")
    logger.debug(f"Configuration: {config}")
    rng = np.random.default_rng(config['seed'])
    size = config['key_space_size']

    # Small sample dump for eyeballing the structure in the debug log
    sample = build_tree(OrderedSplayTree, 15, 'shuffled', np.random.default_rng(config['seed']))
    for key in generate_access_pattern('skewed', 15, 20, np.random.default_rng(config['seed'])):
        sample.get(key)
    logger.debug(sample.format_tree())

    # Robustness across access patterns
    robustness_df, costs_by_run = robustness_analysis(config, rng)
    robustness_df.to_csv(os.path.join(results_dir, 'robustness_analysis.csv'), index=False)
    save_results(robustness_df.to_dict(orient='records'), os.path.join(results_dir, 'robustness_analysis.json'))

    # Statistical Significance Tests
    stats_results = statistical_significance_tests(costs_by_run)
    save_results(stats_results, os.path.join(results_dir, 'statistical_tests.json'))

    # Visualizations
    amortized_cost_visualization(costs_by_run, os.path.join(visualizations_dir, 'amortized_cost.png'))
    depth_distribution_visualization(costs_by_run, os.path.join(visualizations_dir, 'depth_distribution.png'))

    # Runtime and Memory
    access_pattern = generate_access_pattern('skewed', size, config['n_accesses'], rng)
    runtime_results = {}
    memory_results = {}
    for name, tree_class in TREE_CLASSES.items():
        build_seed = int(rng.integers(0, 2 ** 32))
        runtime_results[name] = runtime_performance_measurement(
            tree_class, size, access_pattern, config['insertion_order'], np.random.default_rng(build_seed))
        memory_results[name] = memory_usage_analysis(
            tree_class, size, config['insertion_order'], np.random.default_rng(build_seed))
    save_results({'runtime_seconds': runtime_results}, os.path.join(results_dir, 'runtime_performance.json'))
    save_results({'memory_used_mb': memory_results}, os.path.join(results_dir, 'memory_usage.json'))

    # Profiling Analysis
    profiling_analysis(OrderedSplayTree, size, access_pattern[:config['profile_accesses']],
                       os.path.join(results_dir, 'profiling_report.txt'), config['insertion_order'], rng)

    # Stability Over Multiple Runs
    stability_results = {
        name: stability_over_multiple_runs(
            tree_class, config, n_runs=config['stability_runs'],
            report_path=os.path.join(results_dir, f'stability_report_{name}.txt'))
        for name, tree_class in TREE_CLASSES.items()
    }
    save_results(stability_results, os.path.join(results_dir, 'stability.json'))

    logger.info("=== All experiments and analyses completed successfully! ===")


if __name__ == "__main__":
    main()
