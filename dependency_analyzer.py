import argparse
import sys
from typing import List, Optional

from analyzer_config import DEFAULT_CONFIG_FILE, MAX_DEPTH, MIN_DEPTH, AnalyzerConfig, load_config
from analyzer_errors import AnalyzerError, ConfigError
from dependency_graph import build_dependency_graph, direct_dependencies, print_graph
from package_index import PackageIndex, build_package_index, parse_packages_stream
from repository_source import open_packages_source

"""
Command line entry point.

    python3 dependency_analyzer.py                 # reads ./config.csv
    python3 dependency_analyzer.py my.csv --max-depth 3
    python3 dependency_analyzer.py --direct-only

The Packages index is read and parsed completely before any graph work starts.
Any AnalyzerError ends the run with exit status 1 and the message on stderr.
"""


def load_index(config: AnalyzerConfig) -> PackageIndex:
    print(f"Loading data from: {config.repository_url}")
    with open_packages_source(config.repository_url, config.test_mode) as lines:
        print("Parsing package data...")
        records = parse_packages_stream(lines)
    print(f"Packages found: {len(records)}")
    return build_package_index(records)


def _apply_overrides(config: AnalyzerConfig, args: argparse.Namespace) -> AnalyzerConfig:
    if args.package:
        config.package_name = args.package
    if args.version is not None:
        config.version = args.version
    if args.max_depth is not None:
        if not MIN_DEPTH <= args.max_depth <= MAX_DEPTH:
            raise ConfigError(
                f"--max-depth must be between {MIN_DEPTH} and {MAX_DEPTH}, got: {args.max_depth}"
            )
        config.max_depth = args.max_depth
    return config


def run(config: AnalyzerConfig, direct_only: bool = False) -> None:
    if direct_only:
        print("\n=== Fetching dependencies ===")
        index = load_index(config)
        print(f"Searching package: {config.package_name} (version: {config.version})")
        deps = direct_dependencies(index, config.package_name, config.version)
        print(f"\nDirect dependencies of {config.package_name}:")
        for dep in deps:
            print(f"  - {dep}")
        return

    print("\n=== Building dependency graph ===")
    index = load_index(config)
    graph = build_dependency_graph(index, config.package_name, config.max_depth, config.version)
    print_graph(graph, config.package_name)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Build the dependency graph of a package from a Debian/Ubuntu Packages index.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument(
        'config',
        nargs='?',
        default=DEFAULT_CONFIG_FILE,
        help='CSV configuration file with package_name, repository_url, test_mode, version, max_depth.'
    )
    parser.add_argument('--package', type=str, help='Override package_name from the configuration.')
    parser.add_argument('--version', type=str, help='Override version from the configuration ("" = any).')
    parser.add_argument('--max-depth', type=int, help='Override max_depth from the configuration.')
    parser.add_argument(
        '--direct-only',
        action='store_true',
        help='Only list the direct dependencies of the package, do not build the graph.'
    )
    args = parser.parse_args(argv)

    try:
        config = _apply_overrides(load_config(args.config), args)
        run(config, direct_only=args.direct_only)
    except AnalyzerError as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    print("\n=== Analysis completed successfully! ===")
    return 0


if __name__ == "__main__":
    sys.exit(main())
