"""Minimal immediate-mode SVG writer.

Drawing calls append markup lines; :meth:`SvgWriter.to_xml_string` closes
the root element and returns the document. A writer is single use: calling
``to_xml_string`` twice appends a second closing tag.
"""
from __future__ import annotations

from collections.abc import Iterable
from xml.sax.saxutils import escape

from .exceptions import InvalidGeometry
from .primitives import BLACK, Color, Segment

WHITE = Color(255, 255, 255, 255)


def fix_decimal(number: float) -> str:
    """Integral values as integers, anything else with two decimals."""
    number = float(number)
    if number.is_integer():
        return str(int(number))
    return "%.2f" % number


def _paint(attr: str, color: Color) -> str:
    return '%s="%s" %s-opacity="%s"' % (
        attr, color.hex, attr, fix_decimal(color.opacity))


class SvgWriter:
    """Accumulates rectangles, lines, paths and text into an SVG 1.1 document."""

    def __init__(self, width: float, height: float, background_color: Color | None = None):
        if not width or width <= 0:
            raise InvalidGeometry("Width should be a positive number [%s]" % width)
        if not height or height <= 0:
            raise InvalidGeometry("Height should be a positive number [%s]" % height)

        self.width = width
        self.height = height
        background_color = background_color or WHITE
        w, h = fix_decimal(width), fix_decimal(height)
        self.svg = [
            '<?xml version="1.0" encoding="UTF-8" standalone="no"?>',
            '<!DOCTYPE svg PUBLIC "-//W3C//DTD SVG 1.1//EN" '
            '"http://www.w3.org/Graphics/SVG/1.1/DTD/svg11.dtd">',
            '<svg width="%s" height="%s" viewBox="0 0 %s %s" '
            'xmlns="http://www.w3.org/2000/svg">' % (w, h, w, h),
            '<rect width="100%%" height="100%%" %s/>' % _paint('fill', background_color),
        ]

    def line(self, x1, y1, x2, y2, line_color: Color | None = None, line_width: float = 1):
        line_color = line_color or BLACK
        self.svg.append(
            '<line x1="%s" y1="%s" x2="%s" y2="%s" %s stroke-width="%s"/>' % (
                fix_decimal(x1), fix_decimal(y1), fix_decimal(x2), fix_decimal(y2),
                _paint('stroke', line_color), fix_decimal(line_width)))

    def path(self,
             segments: Segment | Iterable[Segment],
             line_color: Color | None = None,
             line_width: float = 1,
             line_join: str = 'round',
             line_cap: str = 'round'):
        """Add one path built from ``segments``.

        A segment starting where the previous one ended is appended as a
        single ``L`` command; any other segment opens a new ``M ... L ...``
        subpath.
        """
        line_color = line_color or BLACK
        if isinstance(segments, Segment):
            segments = [segments]

        data = []
        last = None
        for seg in segments:
            if last == (seg.x1, seg.y1):
                data.append('L %s %s' % (fix_decimal(seg.x2), fix_decimal(seg.y2)))
            else:
                data.append('M %s %s L %s %s' % (
                    fix_decimal(seg.x1), fix_decimal(seg.y1),
                    fix_decimal(seg.x2), fix_decimal(seg.y2)))
            last = (seg.x2, seg.y2)

        self.svg.append(
            '<path d="%s" %s stroke-width="%s" stroke-linejoin="%s" '
            'stroke-linecap="%s" fill="none"/>' % (
                ' '.join(data), _paint('stroke', line_color),
                fix_decimal(line_width), line_join, line_cap))

    def rect(self, x, y, width, height,
             fill_color: Color | None = None,
             line_color: Color | None = None,
             line_width: float = 1):
        fill_color = fill_color or BLACK
        line_color = line_color or BLACK
        self.svg.append(
            '<rect x="%s" y="%s" width="%s" height="%s" %s %s stroke-width="%s"/>' % (
                fix_decimal(x), fix_decimal(y), fix_decimal(width), fix_decimal(height),
                _paint('fill', fill_color), _paint('stroke', line_color),
                fix_decimal(line_width)))

    def text(self, x, y, text: str,
             font_color: Color | None = None,
             font_size: float = 1,
             font_weight: str = 'normal'):
        font_color = font_color or BLACK
        self.svg.append(
            '<text x="%s" y="%s" font-size="%s" font-weight="%s" %s>%s</text>' % (
                fix_decimal(x), fix_decimal(y), fix_decimal(font_size), font_weight,
                _paint('fill', font_color), escape(text)))

    def to_xml_string(self) -> str:
        self.svg.append('</svg>')
        return '\n'.join(self.svg)
