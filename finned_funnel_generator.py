"""
finned_funnel_generator.py
Generate a solid "turbo" funnel insert: a cone with a tapered stem, a vent
channel for displaced air, and a ring of twisted fin grooves cut into the
cone's slant. A small thumb tab on the rim makes it easy to pull out.

The part is modelled upright for printing: wide end of the cone on the bed
(z = 0), stem pointing up.

Adjust the parameters at the top of the file, then run:
    python finned_funnel_generator.py
"""

import numpy as np
import trimesh

# ── Cone and stem ────────────────────────────────────────────────────────────
OUTER_D     = 70.0   # mm — cone diameter at the wide end       (20 – 150)
CONE_ANGLE  = 60.0   # degrees — full included angle of the cone (30 – 100)
STEM_D      = 12.0   # mm — stem diameter where it meets the cone
STEM_LEN    = 50.0   # mm — stem length above the cone
STEM_TAPER  = 15.0   # % — how much narrower the stem tip is than its base

# ── Air gap ──────────────────────────────────────────────────────────────────
AIR_GAP_PCT = 40.0   # % of STEM_D used for the vent bore (0 = no vent)

# ── Fins ─────────────────────────────────────────────────────────────────────
FIN_TYP     = 1      # 0 = off, 1 = basic, 2 = improved (12-step helix)
FIN_CT      = 10     # number of fin grooves                    (0 – 15)
FIN_TWIST   = 45.0   # degrees — helix angle of each groove
FIN_DIR     = 0      # 0 = clockwise, 1 = counterclockwise
FIN_DEPTH   = 3.0    # mm — how deep the grooves cut into the cone
FIN_WIDTH   = 1.2    # mm — groove width

# ── Thumb tab ────────────────────────────────────────────────────────────────
TAB_D       = 15.0   # mm — tab disk diameter
TAB_H       = 2.0    # mm — tab thickness

# ── Resolution ───────────────────────────────────────────────────────────────
PREVIEW_SECTIONS = 48     # quick look
EXPORT_SECTIONS  = 180    # final print
SECTIONS         = EXPORT_SECTIONS
TWIST_SLICES     = 24     # minimum sub-steps per twisted extrusion

IMPROVED_SEGMENTS = 12    # stacked extrusions used by the improved fins

OUTPUT_FILE = "finned_funnel.stl"
# ────────────────────────────────────────────────────────────────────────────

# Cutters poke this far past the faces they open, so no boolean is left
# working on coplanar faces.
OVERSHOOT = 1.0


def cone_height(outer_d, stem_d, cone_angle):
    """Height of the cone from the right triangle at its half-angle."""
    return (outer_d - stem_d) / (2 * np.tan(np.radians(cone_angle) / 2))


def tapered_diameter(stem_d, stem_taper):
    return stem_d * (1 - stem_taper / 100)


def air_gap_diameter(stem_d, air_gap_pct):
    return stem_d * air_gap_pct / 100


def fin_angles(fin_ct, outer_d):
    """
    Angular position (degrees) of each fin.

    The first fin is nudged off 0° by 2.5 + 360/outer_d so no groove lands
    on the tessellation seam.
    """
    if fin_ct <= 0:
        return np.empty(0)
    start = 2.5 + 360.0 / outer_d
    return start + np.arange(fin_ct) * (360.0 / fin_ct)


def fin_twist_degrees(height, diameter, fin_twist, fin_dir):
    """
    Rotation a blade needs over `height` so its path leans fin_twist degrees
    off vertical at `diameter`. Clockwise (fin_dir 0) is negative.
    """
    arc  = height * np.tan(np.radians(fin_twist))
    turn = np.degrees(arc / (diameter / 2))
    return -turn if fin_dir == 0 else turn


def fin_segments(outer_d, stem_d, cone_h, fin_typ, fin_twist, fin_dir,
                 n=IMPROVED_SEGMENTS):
    """
    Extrusion plan for the fin blades as (z0, height, diameter,
    start_rotation, twist) tuples.

    Basic fins are one extrusion over the full cone, twisted for the base
    diameter. Improved fins stack n shorter extrusions, each twisted for the
    cone diameter at its own base and started where the previous one ended,
    so the groove keeps a near-constant helix angle as the cone narrows.

    Unknown fin types plan nothing.
    """
    if fin_typ == 1:
        twist = fin_twist_degrees(cone_h, outer_d, fin_twist, fin_dir)
        return [(0.0, cone_h, outer_d, 0.0, twist)]

    if fin_typ == 2:
        seg_h  = cone_h / n
        offset = 0.0
        plan   = []
        for i in range(n):
            z0      = i * seg_h
            local_d = outer_d - (outer_d - stem_d) * z0 / cone_h
            twist   = fin_twist_degrees(seg_h, local_d, fin_twist, fin_dir)
            plan.append((z0, seg_h, local_d, offset, twist))
            offset += twist
        return plan

    return []


# ── Mesh builders ────────────────────────────────────────────────────────────

def _wall_quads(ring_a, ring_b):
    """Two triangles per edge between rings of equal length, facing out."""
    n = len(ring_a)
    tris = []
    for i in range(n):
        j = (i + 1) % n
        a0, a1 = ring_a[i], ring_a[j]
        b0, b1 = ring_b[i], ring_b[j]
        tris.append([a0, b1, b0])
        tris.append([a0, a1, b1])
    return tris


def _cap_fan(center_idx, ring_idx, flip):
    n = len(ring_idx)
    tris = []
    for i in range(n):
        j = (i + 1) % n
        if flip:
            tris.append([center_idx, ring_idx[j], ring_idx[i]])
        else:
            tris.append([center_idx, ring_idx[i], ring_idx[j]])
    return tris


def stacked_frustum(radii, heights, sections):
    """
    Closed solid of revolution through circular rings of radii[k] at
    heights[k] (bottom to top). Two rings make a plain frustum; more rings
    make a union of frusta stacked end to end.
    """
    n = sections
    angles = np.linspace(0, 2 * np.pi, n, endpoint=False)
    K = len(radii)

    rings = [
        np.column_stack(
            [r * np.cos(angles), r * np.sin(angles), np.full(n, z)]
        )
        for r, z in zip(radii, heights)
    ]
    vertices = np.vstack([
        *rings,
        [[0.0, 0.0, heights[0]]],
        [[0.0, 0.0, heights[-1]]],
    ])

    def ring_idx(k):
        return np.arange(k * n, (k + 1) * n)

    idx_bot_ctr = K * n
    idx_top_ctr = K * n + 1

    faces = _cap_fan(idx_bot_ctr, ring_idx(0), flip=True)
    for k in range(K - 1):
        faces += _wall_quads(ring_idx(k), ring_idx(k + 1))
    faces += _cap_fan(idx_top_ctr, ring_idx(K - 1), flip=False)

    # validate drops the faces left degenerate when a zero-radius ring
    # merges into an apex
    return trimesh.Trimesh(
        vertices=vertices,
        faces=np.array(faces, dtype=np.int64),
        process=True,
        validate=True,
    )


def twist_slice_count(twist, radius, fin_width):
    """
    Slices needed so a point at `radius` moves at most half a fin width per
    slice while turning through `twist` degrees.
    """
    return max(int(np.ceil(np.radians(abs(twist)) * radius / (fin_width / 2))), 1)


def twisted_extrusion(outline, z0, height, start_rotation, twist, slices):
    """
    Linear extrusion of a convex, counter-clockwise 2D outline from z0 to
    z0 + height, rotated about the Z axis by start_rotation at the bottom and
    by start_rotation + twist at the top (degrees, linear in between).

    Each twisted wall quad is fanned from its own centre vertex, so a
    clockwise and a counter-clockwise extrusion are exact mirror images.
    """
    outline = np.asarray(outline, dtype=np.float64)
    m = len(outline)

    rings = []
    for k in range(slices + 1):
        frac = k / slices
        a = np.radians(start_rotation + twist * frac)
        c, s = np.cos(a), np.sin(a)
        x = outline[:, 0] * c - outline[:, 1] * s
        y = outline[:, 0] * s + outline[:, 1] * c
        rings.append(np.column_stack([x, y, np.full(m, z0 + height * frac)]))
    rings = np.array(rings)

    # centres[k, i]: middle of the quad spanning edge i of rings k and k + 1
    lower, upper = rings[:-1], rings[1:]
    centres = (
        lower + np.roll(lower, -1, axis=1) + upper + np.roll(upper, -1, axis=1)
    ) / 4

    vertices = np.vstack([rings.reshape(-1, 3), centres.reshape(-1, 3)])
    n_ring = (slices + 1) * m

    def ring_idx(k):
        return np.arange(k * m, (k + 1) * m)

    # Convex outline: fan each cap from its first vertex.
    bot, top = ring_idx(0), ring_idx(slices)
    faces = [[bot[0], bot[i + 1], bot[i]] for i in range(1, m - 1)]
    for k in range(slices):
        for i in range(m):
            a0, a1 = k * m + i, k * m + (i + 1) % m
            b0, b1 = a0 + m, a1 + m
            ctr = n_ring + k * m + i
            faces += [[a0, a1, ctr], [a1, b1, ctr], [b1, b0, ctr], [b0, a0, ctr]]
    faces += [[top[0], top[i], top[i + 1]] for i in range(1, m - 1)]

    return trimesh.Trimesh(
        vertices=vertices,
        faces=np.array(faces, dtype=np.int64),
        process=True,
    )


def _blade(inner_r, outer_r, width, angle):
    """Thin rectangle from inner_r to outer_r along the ray at `angle`°."""
    rect = np.array([
        [inner_r, -width / 2],
        [outer_r, -width / 2],
        [outer_r,  width / 2],
        [inner_r,  width / 2],
    ])
    a = np.radians(angle)
    c, s = np.cos(a), np.sin(a)
    return rect @ np.array([[c, s], [-s, c]])


def air_gap_cutter(stem_d, stem_len, cone_h, cone_angle, air_gap_d, sections):
    """
    Vent channel: a sphere at the cone/stem junction, a straight bore out
    through the stem tip, and an angled bore from the junction out through
    the cone's slant.
    """
    r = air_gap_d / 2
    junction = np.array([0.0, 0.0, cone_h])

    sphere = trimesh.creation.uv_sphere(
        radius=r, count=[sections, max(sections // 2, 4)]
    )
    sphere.apply_translation(junction)

    stem_bore = trimesh.creation.cylinder(
        radius=r,
        sections=sections,
        segment=[junction, junction + [0.0, 0.0, stem_len + OVERSHOOT]],
    )

    # Tilted from straight down halfway between the slant and horizontal,
    # which always exits through the slant for any cone_angle < 180.
    half  = np.radians(cone_angle) / 2
    tilt  = (half + np.pi / 2) / 2
    reach = (stem_d / 2) / (np.sin(tilt) - np.cos(tilt) * np.tan(half))
    direction = np.array([np.sin(tilt), 0.0, -np.cos(tilt)])
    cone_bore = trimesh.creation.cylinder(
        radius=r,
        sections=sections,
        segment=[junction, junction + direction * (reach + air_gap_d + OVERSHOOT)],
    )

    return trimesh.boolean.union([sphere, stem_bore, cone_bore])


def fin_cutter(outer_d, stem_d, cone_h, fin_ct, fin_depth, fin_width,
               plan, sections, twist_slices):
    """
    Twisted blades for every fin and every planned segment, minus the core
    of the cone, so what is left only reaches fin_depth into the surface.
    """
    # Blades start well inside the core so they never meet at the axis.
    inner_r = max(stem_d / 2 - fin_depth, 0.0) / 2

    blades = []
    for angle in fin_angles(fin_ct, outer_d):
        for i, (z0, height, diameter, start, twist) in enumerate(plan):
            if i == 0:
                # first segment also pokes out under the base
                z0, height = z0 - OVERSHOOT, height + OVERSHOOT
            outer_r = diameter / 2 + OVERSHOOT
            outline = _blade(inner_r, outer_r, fin_width, angle)
            slices  = max(twist_slices, twist_slice_count(twist, outer_r, fin_width))
            blades.append(
                twisted_extrusion(outline, z0, height, start, twist, slices)
            )

    core = stacked_frustum(
        [max(outer_d / 2 - fin_depth, 0.0), max(stem_d / 2 - fin_depth, 0.0)],
        [0.0, cone_h],
        sections,
    )
    return trimesh.boolean.difference([trimesh.boolean.union(blades), core])


def make_finned_funnel(
    outer_d, cone_angle,
    stem_d, stem_len, stem_taper,
    air_gap_pct,
    fin_typ, fin_ct, fin_twist, fin_dir, fin_depth, fin_width,
    tab_d, tab_h,
    sections, twist_slices,
):
    """
    Build the finned funnel insert.

        1. Body      — cone (outer_d → stem_d) with the tapered stem on top
        2. Air gap   — vent sphere + bores subtracted, if air_gap_pct > 0
        3. Fins      — twisted grooves subtracted, if fin_typ is 1 or 2
        4. Thumb tab — flat disk on the cone's rim, unioned on the bed
    """
    if stem_d >= outer_d:
        raise ValueError("stem_d must be less than outer_d")
    if not 0 < cone_angle < 180:
        raise ValueError("cone_angle must be between 0 and 180 degrees")
    if stem_taper >= 100:
        raise ValueError("stem_taper must be less than 100%")

    cone_h = cone_height(outer_d, stem_d, cone_angle)
    tip_d  = tapered_diameter(stem_d, stem_taper)

    # ── 1. Body ────────────────────────────────────────────────────────────
    funnel = stacked_frustum(
        [outer_d / 2, stem_d / 2, tip_d / 2],
        [0.0, cone_h, cone_h + stem_len],
        sections,
    )

    # ── 2. Air gap ─────────────────────────────────────────────────────────
    if air_gap_pct > 0:
        vent = air_gap_cutter(
            stem_d, stem_len, cone_h, cone_angle,
            air_gap_diameter(stem_d, air_gap_pct), sections,
        )
        funnel = trimesh.boolean.difference([funnel, vent])

    # ── 3. Fins ────────────────────────────────────────────────────────────
    plan = fin_segments(outer_d, stem_d, cone_h, fin_typ, fin_twist, fin_dir)
    if plan and fin_ct > 0:
        fins = fin_cutter(
            outer_d, stem_d, cone_h, fin_ct, fin_depth, fin_width,
            plan, sections, twist_slices,
        )
        funnel = trimesh.boolean.difference([funnel, fins])

    # ── 4. Thumb tab ───────────────────────────────────────────────────────
    tab = trimesh.creation.cylinder(radius=tab_d / 2, height=tab_h, sections=sections)
    tab.apply_translation([outer_d / 2, 0.0, tab_h / 2])

    return trimesh.boolean.union([funnel, tab])


if __name__ == "__main__":
    funnel = make_finned_funnel(
        outer_d=OUTER_D,
        cone_angle=CONE_ANGLE,
        stem_d=STEM_D,
        stem_len=STEM_LEN,
        stem_taper=STEM_TAPER,
        air_gap_pct=AIR_GAP_PCT,
        fin_typ=FIN_TYP,
        fin_ct=FIN_CT,
        fin_twist=FIN_TWIST,
        fin_dir=FIN_DIR,
        fin_depth=FIN_DEPTH,
        fin_width=FIN_WIDTH,
        tab_d=TAB_D,
        tab_h=TAB_H,
        sections=SECTIONS,
        twist_slices=TWIST_SLICES,
    )

    funnel.export(OUTPUT_FILE)

    vol_ml = funnel.volume / 1000.0  # mm³ → cm³ ≈ mL
    print(f"Saved       : {OUTPUT_FILE}")
    print(f"Faces       : {len(funnel.faces)}")
    print(f"Volume      : {vol_ml:.1f} mL")
    print(f"Watertight  : {funnel.is_watertight}")
    if not funnel.is_watertight:
        print("WARNING: mesh has holes — slicer may reject it. Check parameters.")
