import argparse
import asyncio
import statistics
import time

from rolevote import Roles


def gen_roles(n: int) -> Roles:
    roles = Roles()
    for i in range(n - 1):
        roles.use(f"action_{i}", lambda ctx, action, i=i: ctx["k"] == i)
    # catch-all at the end so the last slot always answers
    roles.use(lambda ctx, action: False)
    return roles


async def run(size: int, iters: int, overrides: int):
    roles = gen_roles(size)
    target = f"action_{size // 2}"
    for _ in range(overrides):
        # re-registering must not add evaluation slots
        roles.use(target, lambda ctx, action: ctx["k"] == size // 2)
    ctx = {"k": size // 2}
    lat = []
    allowed = False
    for _ in range(iters):
        t0 = time.perf_counter()
        allowed = await roles.test(ctx, target)
        lat.append((time.perf_counter() - t0) * 1000.0)
    return {
        "p50": statistics.median(lat),
        "avg": sum(lat) / len(lat),
        "p90": percentile(lat, 90),
        "allowed": allowed,
        "slots": len(roles.registry),
    }


def percentile(arr, p):
    arr2 = sorted(arr)
    k = int(round((p / 100.0) * (len(arr2) - 1)))
    return arr2[k]


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--sizes", type=int, nargs="+", default=[10, 50, 100, 500, 1000])
    ap.add_argument("--iters", type=int, default=200)
    ap.add_argument("--overrides", type=int, default=0)
    args = ap.parse_args()
    print("size,slots,avg_ms,p50_ms,p90_ms,allowed")
    for s in args.sizes:
        r = asyncio.run(run(s, args.iters, args.overrides))
        print(f"{s},{r['slots']},{r['avg']:.3f},{r['p50']:.3f},{r['p90']:.3f},{r['allowed']}")


if __name__ == "__main__":
    main()
