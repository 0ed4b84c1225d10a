"""
    Example script clustering the hits of a toy event with blurtools
    Author: blurtools developers

"""

import numpy as np

from blurtools import BlurredClustering, BlurredClusteringParams, WireLayout, set_log_level
from blurtools.io import save_clusters

if __name__ == "__main__":
    set_log_level()
    rng = np.random.default_rng(42)

    # Two TPCs either side of the cathode share wires, so the second
    # block of TPCs is shifted by one plane's worth of wires
    layout = WireLayout(wires_per_plane={0: 240, 1: 240, 2: 480}, n_tpcs=4)

    hits = []
    for plane in (0, 1, 2):
        # a straight track crossing the plane
        for wire in range(20, 80):
            tick = 300 + int(1.5 * wire)
            hits.append(layout.make_hit(tpc=0, plane=plane, wire=wire, tick=tick,
                                        charge=rng.uniform(50., 150.)))
        # a shower-like blob in the second TPC block
        for _ in range(40):
            hits.append(layout.make_hit(tpc=2, plane=plane,
                                        wire=int(rng.integers(100, 115)),
                                        tick=int(rng.integers(800, 840)),
                                        charge=rng.uniform(5., 40.)))

    params = BlurredClusteringParams.from_dict({
        "BlurWire": 2,
        "BlurTick": 4,
        "BlurSigma": 2.0,
        "MinSeed": 1.0,
    })
    clustering = BlurredClustering(params)

    # Planes are independent, so they can be clustered concurrently
    clusters = clustering.cluster_hits(hits, n_jobs=3)

    for plane, plane_clusters in clusters.items():
        print(f"Plane {plane}: {len(plane_clusters)} clusters")
        for cluster in plane_clusters:
            print(f"    {cluster.size:4d} hits, wires {cluster.wire_range}, "
                  f"ticks {cluster.tick_range}, charge {cluster.total_charge:.1f}")

    print(f"Kernels built: {clustering.kernel_cache.n_computed}")
    save_clusters("toy_event_clusters", clusters, params=params)
