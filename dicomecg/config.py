"""Fixed rendering and decoding parameters.

Everything here is immutable and shared by reference; per-call options
live in :class:`dicomecg.render.RenderOptions`.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from .primitives import Color

# Waveform storage SOP classes accepted by the decoder
ALLOWED_SOP_CLASS_UIDS = (
    '1.2.840.10008.5.1.4.1.1.9.1.1',  # 12-lead ECG
    '1.2.840.10008.5.1.4.1.1.9.1.2',  # General ECG
    '1.2.840.10008.5.1.4.1.1.9.1.3',  # Ambulatory ECG
    '1.2.840.10008.5.1.4.1.1.9.2.1',  # Hemodynamic
    '1.2.840.10008.5.1.4.1.1.9.3.1',  # Cardiac electrophysiology
)

# Implicit VR little endian
DEFAULT_TRANSFER_SYNTAX_UID = '1.2.840.10008.1.2'

DPI = 96.0
PIXELS_PER_MM = DPI / 25.4

# Low-pass cut off frequency in Hz
DEFAULT_CUTOFF_FREQUENCY = 40.0

WADOSERVER = os.getenv("WADOSERVER", "http://example.com")


@dataclass(frozen=True)
class RenderingDefaults:
    millimeter_per_second: float = 25.0
    millimeter_per_millivolt: float = 5.0
    paper_background_color: Color = Color(0xff, 0xff, 0xff, 0xff)
    grid_background_color: Color = Color(0xd2, 0xd2, 0xd2, 0xff)
    grid_foreground_color: Color = Color(0xe3, 0x45, 0x38, 0xaf)
    signal_color: Color = Color(0x00, 0x00, 0x00, 0xff)
    text_color: Color = Color(0x00, 0x00, 0x00, 0xff)

    grid_border_width: float = 2.0
    major_grid_width: float = 0.75
    minor_grid_width: float = 0.25
    signal_width: float = 1.25
    title_font_size: float = 10
    title_font_weight: str = 'bold'


RENDERING_DEFAULTS = RenderingDefaults()
