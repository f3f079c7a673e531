from __future__ import annotations

from typing import Iterator


def detect_cycles(id_to_deps: dict[str, list[str]]) -> list[tuple[str, str]]:
    """Return (task_id, message) for every distinct dependency cycle found by DFS.

    Dependencies outside the mapping are ignored. Iteration follows the
    mapping's order so reports are stable. The walk keeps its own stack, so
    long dependency chains do not hit the interpreter recursion limit.
    """

    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {tid: WHITE for tid in id_to_deps.keys()}
    emitted: set[str] = set()
    out: list[tuple[str, str]] = []

    for root in list(state.keys()):
        if state[root] != WHITE:
            continue
        path: list[str] = [root]
        frames: list[Iterator[str]] = [iter(id_to_deps.get(root, []))]
        state[root] = GRAY
        while frames:
            u = path[-1]
            v = next(frames[-1], None)
            if v is None:
                frames.pop()
                path.pop()
                state[u] = BLACK
                continue
            if v not in state:
                continue
            if state[v] == GRAY:
                # cycle: v ... u -> v
                cycle = path[path.index(v):] + [v]
                key = "->".join(cycle)
                if key not in emitted:
                    emitted.add(key)
                    out.append((u, "dependency cycle detected: " + " -> ".join(cycle)))
            elif state[v] == WHITE:
                state[v] = GRAY
                path.append(v)
                frames.append(iter(id_to_deps.get(v, [])))

    return out
