from typing import Dict, List, Optional, Tuple

from package_index import PackageIndex, PackageRecord, find_package

"""
Depth-bounded, cycle-aware dependency graph construction.

The walk is an explicit stack (DFS), never Python recursion, so a pathological
index (very long chains, huge fan-out) cannot hit the interpreter's recursion
limit. Memory is one node per distinct name plus one path list per live frame.

Resolution here is the same "first record wins" heuristic as the rest of the
tool. It is NOT apt-style solving:
 - only the root honours a requested version (exact match, else first record)
 - every other name always takes the first record in document order,
   whatever version its parent asked for
 - names reachable through several paths are fixed at the first visit, so
   sibling order in Depends plus LIFO popping decide their depth
"""

CYCLE_SEPARATOR = " -> "
UNKNOWN_VERSION = "unknown"

##############################################################################
# Data structures
##############################################################################

class GraphNode:
    """
    One package in the graph.

    depth is the traversal depth at which the name was FIRST resolved. It is not
    a shortest-path distance. version is "unknown" for names absent from the index.
    Nodes are created once per name and, by convention, never updated.
    """
    __slots__ = ("name", "version", "dependency_names", "depth")

    def __init__(self, name: str, version: str, dependency_names: List[str], depth: int):
        self.name = name
        self.version = version
        self.dependency_names = list(dependency_names)
        self.depth = depth

    def __repr__(self) -> str:
        return f"GraphNode({self.name!r}, {self.version!r}, depth={self.depth})"


class TraversalFrame:
    """
    A stack entry of the walk.

    path holds the ancestors of `name` (root first), NOT including `name` itself.
    It is only used to detect cycles.
    """
    __slots__ = ("name", "depth", "path")

    def __init__(self, name: str, depth: int, path: List[str]):
        self.name = name
        self.depth = depth
        self.path = path


class DependencyGraph:
    """
    Result of one traversal run.

     - nodes: name -> GraphNode, every name popped and resolved within max_depth
     - edges: name -> dependency names, for every name found in the index
       (unknown names get a node but no edge entry)
     - cycles: distinct cycle strings like "a -> b -> a", in detection order.
       Deduplication is by exact text, so rotations of one cycle
       ("b -> a -> b") are kept as separate entries.
     - max_depth: inclusive depth bound used for the run
     - index: the PackageIndex the graph was built from
    """

    def __init__(self, max_depth: int, index: PackageIndex):
        self.nodes: Dict[str, GraphNode] = {}
        self.edges: Dict[str, List[str]] = {}
        self.cycles: List[str] = []
        self.max_depth = max_depth
        self.index = index

    def add_cycle(self, path: List[str]) -> bool:
        """Record `path` as a cycle unless the same string is already known."""
        cycle_str = CYCLE_SEPARATOR.join(path)
        if cycle_str in self.cycles:
            return False
        self.cycles.append(cycle_str)
        print(f"  [!] Cycle detected: {cycle_str}")
        return True

    def summary(self) -> Tuple[int, int, int]:
        """(node count, edge count, cycle count)"""
        return len(self.nodes), len(self.edges), len(self.cycles)


##############################################################################
# Graph construction
##############################################################################

def build_dependency_graph(
    index: PackageIndex,
    root: str,
    max_depth: int,
    root_version: Optional[str] = None,
) -> DependencyGraph:
    """
    Walk the dependencies of `root` down to `max_depth` (inclusive).

    The root must exist in the index: if it has no record at all we raise
    PackageNotFoundError before building anything. Any other name missing
    from the index becomes an "unknown" leaf node, not an error.

    For every popped frame, in order:
      1. name already in the ancestor path -> record the cycle, drop the frame
      2. name already has a node -> drop the frame (first visit wins)
      3. depth > max_depth -> drop the frame (pushes never exceed it anyway)
      4. resolve the name and create its node
      5. if depth < max_depth, push every dependency that is not on the path
         and not visited yet; dependencies that ARE on the path are recorded
         as cycles right away instead of being pushed
    """
    root_record = find_package(index, root, root_version)

    graph = DependencyGraph(max_depth, index)

    print(f"\nStarting DFS for package: {root} (max_depth: {max_depth})")

    stack: List[TraversalFrame] = [TraversalFrame(root, 0, [])]

    while stack:
        frame = stack.pop()
        pkg_name = frame.name
        depth = frame.depth

        if pkg_name in frame.path:
            graph.add_cycle(frame.path + [pkg_name])
            continue

        if pkg_name in graph.nodes:
            continue

        if depth > max_depth:
            continue

        pkg = _resolve_node_record(index, pkg_name, root, root_record)
        if pkg is None:
            graph.nodes[pkg_name] = GraphNode(pkg_name, UNKNOWN_VERSION, [], depth)
            continue

        graph.nodes[pkg_name] = GraphNode(pkg.name, pkg.version, pkg.dependency_names, depth)
        graph.edges[pkg_name] = list(pkg.dependency_names)

        if depth >= max_depth:
            continue

        new_path = frame.path + [pkg_name]
        for dep in pkg.dependency_names:
            if dep in new_path:
                graph.add_cycle(new_path + [dep])
            elif dep not in graph.nodes:
                stack.append(TraversalFrame(dep, depth + 1, new_path))

    node_count, edge_count, cycle_count = graph.summary()
    print("\nGraph built:")
    print(f"  - Nodes: {node_count}")
    print(f"  - Edges: {edge_count}")
    print(f"  - Cycles detected: {cycle_count}")

    return graph


def _resolve_node_record(
    index: PackageIndex,
    pkg_name: str,
    root: str,
    root_record: PackageRecord,
) -> Optional[PackageRecord]:
    """
    The root keeps the record chosen by find_package (exact version if one was
    asked for). Everything else gets the first indexed record, or None.
    """
    if pkg_name == root:
        return root_record
    candidates = index.get(pkg_name)
    if not candidates:
        return None
    return candidates[0]


def direct_dependencies(index: PackageIndex, name: str, version: Optional[str] = None) -> List[str]:
    """Dependency names of the resolved root only, without walking further."""
    pkg = find_package(index, name, version)
    print(f"Package found: {pkg.name} ({pkg.version})")
    return list(pkg.dependency_names)


##############################################################################
# Rendering
##############################################################################

def format_graph(graph: DependencyGraph, root: str) -> List[str]:
    """
    Render the graph as an indented tree, one line per entry:

        - a [1.0] (depth: 0)
          - b [2.0] (depth: 1)
            - a [1.0] (depth: 0) [already shown]

    A name is expanded only the first time it is printed and only while its
    node depth is below max_depth. Names without a node are printed as
    "(not found)". Cycles follow as a numbered list.
    """
    out: List[str] = ["", "=== Dependency graph ==="]
    printed = set()

    stack: List[Tuple[str, int]] = [(root, 0)]
    while stack:
        pkg_name, indent = stack.pop()
        prefix = "  " * indent

        node = graph.nodes.get(pkg_name)
        if node is None:
            out.append(f"{prefix}- {pkg_name} (not found)")
            continue

        if pkg_name in printed:
            out.append(f"{prefix}- {node.name} [{node.version}] (depth: {node.depth}) [already shown]")
            continue

        out.append(f"{prefix}- {node.name} [{node.version}] (depth: {node.depth})")
        printed.add(pkg_name)

        if node.depth < graph.max_depth:
            for dep in reversed(node.dependency_names):
                stack.append((dep, indent + 1))

    if graph.cycles:
        out.append("")
        out.append("=== Detected cycles ===")
        for i, cycle in enumerate(graph.cycles, start=1):
            out.append(f"{i}. {cycle}")

    return out


def print_graph(graph: DependencyGraph, root: str) -> None:
    for line in format_graph(graph, root):
        print(line)
