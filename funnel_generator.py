"""
funnel_generator.py
Generate a thin-walled funnel shell (cone + throat + top lip) as an STL file
for 3D printing.

The whole shape is one closed 2D profile revolved a full turn around the Z
axis, so the printed part is always a clean solid of revolution.

Adjust the parameters at the top of the file, then run:
    python funnel_generator.py
"""

import numpy as np
import trimesh

# ── Funnel shape ─────────────────────────────────────────────────────────────
FUNNEL_HEIGHT     = 60.0   # mm — height of the conical section
FUNNEL_TOP_RADIUS = 50.0   # mm — inner radius at the wide end of the cone
THROAT_HEIGHT     = 20.0   # mm — length of the straight spout below the cone
THROAT_RADIUS     = 15.0   # mm — inner radius of the spout (< FUNNEL_TOP_RADIUS)
WALL_THICKNESS    =  0.8   # mm — wall thickness, measured square to the wall
TOP_EDGE_HEIGHT   =  5.0   # mm — straight lip above the cone

# ── Resolution ───────────────────────────────────────────────────────────────
PREVIEW_SECTIONS  =  64    # quick look
EXPORT_SECTIONS   = 360    # final print — one facet per degree
SECTIONS          = EXPORT_SECTIONS

OUTPUT_FILE = "funnel.stl"
# ────────────────────────────────────────────────────────────────────────────


def funnel_profile(
    funnel_height, funnel_top_radius,
    throat_height, throat_radius,
    wall_thickness, top_edge_height,
):
    """
    Closed half-section of the funnel wall, as (x, z) points.

    x is measured from the inner face of the top lip (x = radius - R), z from
    the tip of the throat. Walking the outline:

        6 ── 5          top lip
        │    │
        7    4          cone/lip knee
         ╲    ╲
          ╲    ╲        cone wall
           8    3       throat/cone knee
           │    │
           │    │       throat
           1 ── 2       (9 = 1, closes the ring)

    The cone wall is wall_thickness thick measured square to the slope, so
    the outer knees (3, 4) drop below the inner ones by wall * tan(alpha / 2),
    with alpha the cone half-angle.

    No validation: inverted or zero dimensions give a degenerate outline.
    """
    R  = funnel_top_radius
    r  = throat_radius
    H  = funnel_height
    h  = throat_height
    w  = wall_thickness
    e  = top_edge_height

    alpha = np.arctan2(R - r, H)          # cone half-angle
    drop  = w * np.tan(alpha / 2)         # outer knee offset below inner knee

    x_throat = r - R
    z_cone   = h + H
    z_top    = h + H + e

    return np.array([
        [x_throat,     0.0],              # 1. inner throat tip
        [x_throat + w, 0.0],              # 2. outer throat tip
        [x_throat + w, h - drop],         # 3. outer throat/cone knee
        [w,            z_cone - drop],    # 4. outer cone/lip knee
        [w,            z_top],            # 5. outer lip top
        [0.0,          z_top],            # 6. inner lip top
        [0.0,          z_cone],           # 7. inner cone/lip knee
        [x_throat,     h],                # 8. inner throat/cone knee
        [x_throat,     0.0],              # 9. back to 1
    ])


def make_funnel(
    funnel_height, funnel_top_radius,
    throat_height, throat_radius,
    wall_thickness, top_edge_height,
    sections,
):
    """
    Revolve the funnel profile 360° around the Z axis into a hollow shell.
    """
    if wall_thickness <= 0:
        raise ValueError("wall_thickness must be positive")
    if throat_radius >= funnel_top_radius:
        raise ValueError("throat_radius must be less than funnel_top_radius")

    profile = funnel_profile(
        funnel_height, funnel_top_radius,
        throat_height, throat_radius,
        wall_thickness, top_edge_height,
    )

    # Shift from lip-relative x into true radius before sweeping.
    section = profile + [funnel_top_radius, 0.0]

    return trimesh.creation.revolve(section, sections=sections)


if __name__ == "__main__":
    funnel = make_funnel(
        funnel_height=FUNNEL_HEIGHT,
        funnel_top_radius=FUNNEL_TOP_RADIUS,
        throat_height=THROAT_HEIGHT,
        throat_radius=THROAT_RADIUS,
        wall_thickness=WALL_THICKNESS,
        top_edge_height=TOP_EDGE_HEIGHT,
        sections=SECTIONS,
    )

    funnel.export(OUTPUT_FILE)

    vol_ml = funnel.volume / 1000.0  # mm³ → cm³ ≈ mL
    print(f"Saved       : {OUTPUT_FILE}")
    print(f"Faces       : {len(funnel.faces)}")
    print(f"Volume      : {vol_ml:.1f} mL  (material volume, not capacity)")
    print(f"Watertight  : {funnel.is_watertight}")
    if not funnel.is_watertight:
        print("WARNING: mesh has holes — slicer may reject it. Check parameters.")
