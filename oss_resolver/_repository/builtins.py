"""Platform built-in modules that live in the platform's own source tree."""

from typing import Optional

from oss_resolver.coordinate import Coordinate, Ecosystem

# Node.js core modules; npm names that shadow these are not registry packages
NODE_CORE_MODULES = frozenset(
    {
        "assert",
        "async_hooks",
        "buffer",
        "child_process",
        "cluster",
        "console",
        "constants",
        "crypto",
        "dgram",
        "diagnostics_channel",
        "dns",
        "domain",
        "events",
        "fs",
        "http",
        "http2",
        "https",
        "inspector",
        "module",
        "net",
        "os",
        "path",
        "perf_hooks",
        "process",
        "punycode",
        "querystring",
        "readline",
        "repl",
        "stream",
        "string_decoder",
        "timers",
        "tls",
        "trace_events",
        "tty",
        "url",
        "util",
        "v8",
        "vm",
        "worker_threads",
        "zlib",
    }
)

NODE_SOURCE_TREE = Coordinate(ecosystem=Ecosystem.GITHUB, namespace="nodejs", name="node", subpath="lib")


def is_node_builtin(coordinate: Coordinate) -> bool:
    """True for unscoped npm names that are Node.js core (or internal "_") modules."""
    if coordinate.ecosystem != Ecosystem.NPM or coordinate.namespace:
        return False
    name = coordinate.name
    return name.startswith("_") or name in NODE_CORE_MODULES


def node_builtin_location(coordinate: Coordinate) -> Optional[Coordinate]:
    """Location of a Node.js built-in module in the Node.js source tree."""
    if is_node_builtin(coordinate):
        return NODE_SOURCE_TREE
    return None
