"""XML filing export and import."""

from priznanie.filing.xml_export import render_dpfo_xml
from priznanie.filing.xml_import import parse_dpfo_xml

__all__ = ["parse_dpfo_xml", "render_dpfo_xml"]
