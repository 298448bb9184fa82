"""
plot_debug.py
=============
Matplotlib sanity-check plot for the galaxy generator.

Shows, side by side:
  • the particle galaxy placed at a chosen time (stars, dust, filaments),
    coloured by black-body temperature and sized by magnitude, with the core,
    disc and far-halo radii drawn as circles;
  • the star-system field with its hyperlane spanning tree.

Usage
-----
    # Default: use ./output/, galaxy at t = 0
    python plot_debug.py

    # Let the galaxy rotate for 50 million years first
    python plot_debug.py --time 5e7

    # Stars only, at most 20 000 particles drawn
    python plot_debug.py --no_dust --no_filaments --max_particles 20000

    # Save to PNG instead of opening an interactive window
    python plot_debug.py --save galaxy.png

    # Save as SVG (vector, scales to any size)
    python plot_debug.py --svg galaxy.svg

Render constants (perturbation fold and amplitude, radii) are read from
``params.json`` written by run_generate.py; explicit CLI values take
precedence.
"""

from __future__ import annotations

import argparse
import json
import os
from typing import List, Optional

import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
import numpy as np
import pandas as pd
from matplotlib.collections import LineCollection

from rotation_curve import particle_positions


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="plot_debug.py",
        description="Debug visualisation for the galaxy generator.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Output location
    p.add_argument("--out_dir",  default="output",
                   help="Directory containing particles.csv, systems.csv and hyperlanes.csv.")
    p.add_argument("--save",     default=None, metavar="FILE",
                   help="Save figure to FILE (png/pdf/svg) instead of displaying.")
    p.add_argument("--svg",      nargs="?", const="galaxy.svg", default=None,
                   metavar="FILE",
                   help="Save figure as SVG (vector format).  "
                        "FILE defaults to 'galaxy.svg' when omitted.  "
                        "Overrides --save when both are given.")

    # Time and categories
    p.add_argument("--time", type=float, default=0.0,
                   help="Simulation time in years at which particles are placed.")
    p.add_argument("--no_stars",     action="store_true", help="Hide star particles.")
    p.add_argument("--no_dust",      action="store_true", help="Hide dust particles.")
    p.add_argument("--no_filaments", action="store_true", help="Hide filament particles.")
    p.add_argument("--max_particles", type=int, default=200_000,
                   help="Randomly subsample to at most this many particles.")

    # Particle appearance
    p.add_argument("--star_size", type=float, default=1.2,
                   help="Scatter marker size for a magnitude-1 star.")
    p.add_argument("--dust_size", type=float, default=6.0,
                   help="Scatter marker size for a magnitude-1 dust particle.")

    # Hyperlane appearance
    p.add_argument("--no_lanes",   action="store_true",
                   help="Skip drawing hyperlanes.")
    p.add_argument("--edge_alpha", type=float, default=0.6,
                   help="Hyperlane alpha (0=invisible, 1=solid).")
    p.add_argument("--edge_color", default="#4488ff",
                   help="Hyperlane colour (any matplotlib colour string).")
    p.add_argument("--edge_width", type=float, default=0.8,
                   help="Hyperlane width in points.")

    # Render constants – auto-loaded from params.json when present;
    # explicit CLI values always take precedence.
    p.add_argument("--pert_n",        type=int,   default=None)
    p.add_argument("--pert_amp",      type=float, default=None)
    p.add_argument("--galaxy_radius", type=float, default=None)
    p.add_argument("--core_radius",   type=float, default=None)
    p.add_argument("--far_radius",    type=float, default=None)

    return p


_RENDER_DEFAULTS = {
    "pert_n": 2, "pert_amp": 75.0,
    "galaxy_radius": 13_000.0, "core_radius": 4030.0, "far_radius": 26_000.0,
}


def _load_params(args: argparse.Namespace) -> None:
    saved = {}
    params_path = os.path.join(args.out_dir, "params.json")
    if os.path.exists(params_path):
        with open(params_path) as fh:
            saved = json.load(fh)
    for key, fallback in _RENDER_DEFAULTS.items():
        if getattr(args, key, None) is None:
            setattr(args, key, saved.get(key, fallback))


# ---------------------------------------------------------------------------
# Plot
# ---------------------------------------------------------------------------

def _draw_particles(ax, particles: pd.DataFrame, args: argparse.Namespace) -> int:
    hidden = [kind for kind, off in (("star", args.no_stars),
                                     ("dust", args.no_dust),
                                     ("filament", args.no_filaments)) if off]
    shown = particles[~particles["type"].isin(hidden)]
    if len(shown) > args.max_particles:
        shown = shown.sample(args.max_particles, random_state=0)
    if len(shown) == 0:
        return 0

    xy = particle_positions(
        shown["theta0"].values, shown["vel_theta"].values, args.time,
        shown["tilt_angle"].values, shown["a"].values, shown["b"].values,
        args.pert_n, args.pert_amp,
    )
    rgba = shown[["red", "green", "blue", "alpha"]].values.astype(np.float32)
    is_star = (shown["type"] == "star").values
    # dust is drawn large and faint, stars small and bright
    rgba[:, 3] = np.where(is_star, np.clip(shown["mag"].values * 2.0, 0.1, 1.0),
                          np.clip(shown["mag"].values, 0.01, 0.3))
    size = np.where(is_star, args.star_size, args.dust_size) * shown["mag"].values

    order = np.argsort(is_star, kind="stable")  # stars on top
    ax.scatter(xy[order, 0], xy[order, 1], c=rgba[order], s=size[order],
               linewidths=0, zorder=5)
    return len(shown)


def _draw_radii(ax, args: argparse.Namespace) -> List[mpatches.Patch]:
    rings = [
        (args.core_radius,   "#cc6633", "Core"),
        (args.galaxy_radius, "#3a3a5c", "Disc"),
        (args.far_radius,    "#2a2a3a", "Far halo"),
    ]
    patches = []
    for radius, colour, label in rings:
        ax.add_patch(plt.Circle((0, 0), radius, fill=False, edgecolor=colour,
                                linewidth=0.8, linestyle="--", zorder=2))
        patches.append(mpatches.Patch(facecolor=colour, edgecolor=colour,
                                      label=f"{label} (r={radius:,.0f})"))
    return patches


def _draw_star_field(ax, systems: pd.DataFrame, lanes: pd.DataFrame,
                     args: argparse.Namespace) -> None:
    if len(systems) == 0:
        ax.text(0.5, 0.5, "no star systems", color="white",
                ha="center", va="center", transform=ax.transAxes)
        return

    xz = systems[["x", "z"]].values
    if not args.no_lanes and len(lanes) > 0:
        src = lanes["source"].values.astype(int)
        dst = lanes["destination"].values.astype(int)
        segs = np.stack([xz[src], xz[dst]], axis=1)
        ax.add_collection(LineCollection(
            segs, colors=args.edge_color, linewidths=args.edge_width,
            alpha=args.edge_alpha, zorder=4,
        ))

    ax.scatter(xz[:, 0], xz[:, 1],
               c=systems[["red", "green", "blue"]].values,
               s=np.clip(systems["scale"].values * 400.0, 4.0, None),
               linewidths=0, zorder=6)
    extent = max(float(np.abs(xz).max()) * 1.1, 1.0)
    ax.set_xlim(-extent, extent)
    ax.set_ylim(-extent, extent)


def draw_galaxy(args: argparse.Namespace) -> plt.Figure:
    """Load CSV files and draw the two-panel debug plot.

    Parameters
    ----------
    args : parsed argparse Namespace (see ``build_parser``)

    Returns
    -------
    matplotlib Figure
    """
    _load_params(args)

    particles_path = os.path.join(args.out_dir, "particles.csv")
    systems_path   = os.path.join(args.out_dir, "systems.csv")
    lanes_path     = os.path.join(args.out_dir, "hyperlanes.csv")

    if not os.path.exists(particles_path):
        raise FileNotFoundError(
            f"particles.csv not found in '{args.out_dir}'.  "
            "Run run_generate.py first."
        )

    particles = pd.read_csv(particles_path)
    systems = pd.read_csv(systems_path) if os.path.exists(systems_path) else pd.DataFrame()
    lanes = pd.read_csv(lanes_path) if os.path.exists(lanes_path) else pd.DataFrame()

    # ── Figure setup ─────────────────────────────────────────────────────
    fig, (ax_gal, ax_sys) = plt.subplots(1, 2, figsize=(18, 9))
    BG = "#09090f"
    fig.patch.set_facecolor(BG)
    for ax in (ax_gal, ax_sys):
        ax.set_facecolor(BG)
        ax.set_aspect("equal", adjustable="datalim")
        for spine in ax.spines.values():
            spine.set_edgecolor("#2a2a3a")
        ax.tick_params(colors="#555566", labelsize=7)

    # ── Galaxy ────────────────────────────────────────────────────────────
    margin = args.galaxy_radius * 1.6
    ax_gal.set_xlim(-margin, margin)
    ax_gal.set_ylim(-margin, margin)
    ax_gal.autoscale(False)

    legend_patches = _draw_radii(ax_gal, args)
    n_drawn = _draw_particles(ax_gal, particles, args)

    counts = particles["type"].value_counts()
    ax_gal.set_title(
        f"Galaxy at t = {args.time:,.0f} yr  —  "
        f"{counts.get('star', 0):,} stars  |  {counts.get('dust', 0):,} dust  |  "
        f"{counts.get('filament', 0):,} filament  ({n_drawn:,} drawn)",
        color="white", fontsize=10, pad=10,
    )
    ax_gal.legend(handles=legend_patches, loc="upper right", fontsize=8,
                  facecolor="#111122", edgecolor="#333355", labelcolor="white")

    # ── Star systems ──────────────────────────────────────────────────────
    _draw_star_field(ax_sys, systems, lanes, args)
    ax_sys.set_title(
        f"Star systems  —  {len(systems):,} systems  |  {len(lanes):,} hyperlanes"
        + ("  (lanes hidden)" if args.no_lanes else ""),
        color="white", fontsize=10, pad=10,
    )

    return fig


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args   = parser.parse_args(argv)

    fig = draw_galaxy(args)

    if args.svg:
        fig.savefig(args.svg, format="svg", bbox_inches="tight",
                    facecolor=fig.get_facecolor())
        print(f"Saved figure to {args.svg}")
    elif args.save:
        fig.savefig(args.save, dpi=150, bbox_inches="tight",
                    facecolor=fig.get_facecolor())
        print(f"Saved figure to {args.save}")
    else:
        plt.show()


if __name__ == "__main__":
    main()
