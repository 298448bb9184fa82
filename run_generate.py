"""
run_generate.py
===============
CLI entrypoint for the procedural galaxy generator.

All parameters are optional; unspecified parameters fall back to the defaults
defined in ``GalaxyConfig`` and ``StarFieldConfig``.

Quick start
-----------
    python run_generate.py

With custom parameters (matching the default preset)::

    python run_generate.py \\
        --star_count 50000 \\
        --galaxy_radius 13000 \\
        --core 0.31 \\
        --delta_angle 0.43 \\
        --ex1 0.63 --ex2 1.09 \\
        --samples 200 \\
        --seed 7 \\
        --out_dir output

Then visualise the result::

    python plot_debug.py
"""

import argparse
import dataclasses
import json
import logging
import os
from typing import List, Optional

from galaxygen import GalaxyConfig, GalaxyGenerator, StarFieldConfig
from logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    g = GalaxyConfig()
    f = StarFieldConfig()
    p = argparse.ArgumentParser(
        prog="run_generate.py",
        description=(
            "Procedural spiral-galaxy generator.\n"
            "Produces particles.csv, systems.csv, hyperlanes.csv, params.json "
            "and (optionally) hyperlanes.gexf in OUT_DIR."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # ── Galaxy shape ──────────────────────────────────────────────────────
    p.add_argument("--galaxy_radius", type=float, default=g.galaxy_radius, metavar="R",
                   help="Radius of the visible disc (parsec).")
    p.add_argument("--core", type=float, default=g.core, metavar="F",
                   help="Core radius as a fraction of the galaxy radius.")
    p.add_argument("--delta_angle", type=float, default=g.delta_angle, metavar="D",
                   help="Spiral winding in [0, 1] (tilt per parsec, 1e-4 … 8e-4 rad).")
    p.add_argument("--ex1", type=float, default=g.ex1, metavar="E",
                   help="Orbit axis ratio at the core edge.")
    p.add_argument("--ex2", type=float, default=g.ex2, metavar="E",
                   help="Orbit axis ratio at the disc edge.")

    # ── Spiral perturbation ───────────────────────────────────────────────
    p.add_argument("--pert_n", type=int, default=g.pert_n, metavar="N",
                   help="Fold of the sinusoidal arm perturbation (0 = off).")
    p.add_argument("--pert_amp", type=float, default=g.pert_amp, metavar="A",
                   help="Perturbation divisor: amplitude is a / PERT_AMP.")

    # ── Population ────────────────────────────────────────────────────────
    p.add_argument("--star_count", type=int, default=g.star_count, metavar="N",
                   help="Particles per category (filaments seed STAR_COUNT/100 clusters).")
    p.add_argument("--base_temp", type=float, default=g.base_temp, metavar="K",
                   help="Dust base temperature in Kelvin.")
    p.add_argument("--no_stars", action="store_true", help="Skip star particles.")
    p.add_argument("--no_dust", action="store_true", help="Skip dust particles.")
    p.add_argument("--no_filaments", action="store_true", help="Skip dust filaments.")
    p.add_argument("--no_dark_matter", action="store_true",
                   help="Drop the halo term from the rotation curve.")
    p.add_argument("--cdf_steps", type=int, default=g.cdf_steps, metavar="N",
                   help="Integration steps of the radial CDF (even).")

    # ── Star systems / hyperlanes ─────────────────────────────────────────
    p.add_argument("--samples", type=int, default=f.samples, metavar="N",
                   help="Maximum number of star systems.")
    p.add_argument("--inner_radius", type=float, default=f.inner_radius, metavar="R",
                   help="No systems inside this radius.")
    p.add_argument("--outer_radius", type=float, default=f.outer_radius, metavar="R",
                   help="Systems fill out to 0.75 × this radius.")
    p.add_argument("--min_distance", type=float, default=f.min_distance, metavar="D",
                   help="Minimum separation between systems.")
    p.add_argument("--no_hyperlanes", action="store_true",
                   help="Do not build the hyperlane network.")

    # ── Reproducibility ───────────────────────────────────────────────────
    p.add_argument("--seed", type=int, default=7, metavar="S",
                   help="Random seed for reproducible output.")

    # ── Output ────────────────────────────────────────────────────────────
    p.add_argument("--out_dir", type=str, default="output", metavar="DIR",
                   help="Directory to write output files (created if absent).")
    p.add_argument("--no_gexf", action="store_true",
                   help="Skip GEXF export (useful when networkx is not installed).")
    p.add_argument("--verbose", action="store_true", help="Log at DEBUG level.")

    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args   = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    cfg = GalaxyConfig(
        galaxy_radius     = args.galaxy_radius,
        core              = args.core,
        delta_angle       = args.delta_angle,
        ex1               = args.ex1,
        ex2               = args.ex2,
        pert_n            = args.pert_n,
        pert_amp          = args.pert_amp,
        star_count        = args.star_count,
        base_temp         = args.base_temp,
        stars_enabled     = not args.no_stars,
        dust_enabled      = not args.no_dust,
        filaments_enabled = not args.no_filaments,
        dark_matter       = not args.no_dark_matter,
        cdf_steps         = args.cdf_steps,
        seed              = args.seed,
    )
    field = StarFieldConfig(
        samples            = args.samples,
        inner_radius       = args.inner_radius,
        outer_radius       = args.outer_radius,
        min_distance       = args.min_distance,
        hyperlanes_enabled = not args.no_hyperlanes,
        seed               = args.seed,
    )

    # Print config so the user can confirm parameters before waiting
    print("Configuration")
    print("─" * 40)
    for obj in (cfg, field):
        for fld in dataclasses.fields(obj):
            if fld.name != "has_changed":
                print(f"  {fld.name:<22} = {getattr(obj, fld.name)}")
    print()

    gen = GalaxyGenerator(cfg, field)
    gen.run(out_dir=args.out_dir, write_gexf=not args.no_gexf)

    # Persist generation parameters so plot_debug.py can read them automatically
    params_path = os.path.join(args.out_dir, "params.json")
    params = {
        fld.name: getattr(obj, fld.name)
        for obj in (cfg, field)
        for fld in dataclasses.fields(obj)
        if fld.name != "has_changed"
    }
    params["core_radius"] = cfg.core_radius
    params["far_radius"] = cfg.far_radius
    with open(params_path, "w") as fh:
        json.dump(params, fh, indent=2)
    print(f"Wrote {params_path}")

    print(
        f"\nNext steps:\n"
        f"  • Debug plot : python plot_debug.py --out_dir {args.out_dir}\n"
        f"  • Gephi      : import {args.out_dir}/hyperlanes.gexf"
    )


if __name__ == "__main__":
    main()
