"""Representative sample files for every dialect, valid and deliberately broken."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

MARKUP_SAMPLE = """<?xml version="1.0" encoding="UTF-8"?>
<cabinet version="2.1.0">
  <metadata>
    <author>Shop Drawings</author>
    <description>Base cabinet with one drawer</description>
  </metadata>
  <parts>
    <part id="carcass" type="box" version="2.1.0">
      <name>Carcass</name>
      <parameters>
        <parameter id="width" name="width" value="600" unit="mm" required="true">
          <validation>
            <rule type="min" value="300" message="Carcass narrower than 300mm"/>
            <rule type="max" value="1200" message="Carcass wider than 1200mm"/>
          </validation>
        </parameter>
        <parameter id="height" name="height" value="720" unit="mm" required="true"/>
        <parameter id="material" name="material" value="birch_ply" required="true"/>
      </parameters>
      <constraints>
        <constraint id="width_range" name="width_range" type="range" severity="error">
          <condition>width &gt;= 300 AND width &lt;= 1200</condition>
          <affected_parameters>width</affected_parameters>
        </constraint>
      </constraints>
    </part>
    <part id="drawer" type="drawer">
      <name>Drawer</name>
      <parameter id="drawer_width" name="drawer_width" value="{width}" unit="mm" required="true"/>
    </part>
  </parts>
  <dependencies>
    <dependency from="drawer" to="carcass" type="requires"/>
  </dependencies>
</cabinet>
"""

LINE_A_SAMPLE = """# Base cabinet, line format
CAB_CARCASS
width = 600
height = 720
depth = 560
material = birch_ply
version = 1.4.2

CONSTRAINT_WIDTH_RANGE
type = range
severity = error
condition = width >= 300 AND width <= 1200
affected_parameters = width

CAB_DOOR
width = {width}
hinge = "blum_clip_top"
soft_close = true

DEPENDENCY_DOOR_TO_CARCASS
type = requires
description = Door hangs on the carcass
"""

LINE_B_SAMPLE = """project = kitchen_north
compatibility = cabx-2, moz-legacy

CABX_WALL_UNIT
width = 800
height = 700
shelves = 2
version = 2.0.0

CONSTRAINT_SHELF_SPAN: shelves <= width / 400
"""

MODEL_SAMPLE = """MZB_PARAMETER_VARIABLES
x = 10.5
y = 20.25

MZB_PARAMETER_CONSTANTS
GRAVITY = 9.81
kerf = 3.2

MZB_LIMITS
x_min = 0
x_max = 100

CONSTRAINT_X_BOUNDS
condition = x >= x_min AND x <= x_max
affected_parameters = x
"""

BROKEN_MARKUP_SAMPLE = """<?xml version="1.0"?>
<assembly>
  <part id="side_panel" type="panel">
    <parameter id="thickness" name="thickness" value="18" unit="mm" required="true"/>
    <parameter id="edge_band" name="edge_band" value="" required="true"/>
    <constraint id="grain" name="grain_direction" condition="" affected_parameters="thickness"/>
  </part>
  <part id="shelf" type="panel">
    <parameter id="shelf_depth" name="depth" value="540" unit="mm"/>
    <parameter id="shelf_count" name="count" value="3"/>
  </part>
</assembly>
"""

BROKEN_LINE_A_SAMPLE = """CAB_BROKEN_PANEL
thickness = 18

CONSTRAINT_EDGE
type = custom
condition =
affected_parameters = thickness

CAB_EMPTY
"""

SAMPLE_FILES: Dict[str, str] = {
    "base_cabinet.xml": MARKUP_SAMPLE,
    "base_cabinet.cab": LINE_A_SAMPLE,
    "wall_unit.cabx": LINE_B_SAMPLE,
    "cabinet_model.mzb": MODEL_SAMPLE,
}

BROKEN_SAMPLE_FILES: Dict[str, str] = {
    "broken_assembly.xml": BROKEN_MARKUP_SAMPLE,
    "broken_panel.cab": BROKEN_LINE_A_SAMPLE,
}


def sample_files(include_broken: bool = False) -> Dict[str, str]:
    """Return ``{filename: content}`` for the bundled samples."""
    files = dict(SAMPLE_FILES)
    if include_broken:
        files.update(BROKEN_SAMPLE_FILES)
    return files


def write_samples(directory: Path, include_broken: bool = False) -> List[Path]:
    """Write the samples into *directory*, creating it if needed."""
    directory.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for name, content in sample_files(include_broken).items():
        path = directory / name
        path.write_text(content, encoding="utf-8")
        written.append(path)
    return written
