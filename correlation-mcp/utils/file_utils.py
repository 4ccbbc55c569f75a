"""
file_utils.py

This module contains utility functions for file operations: locating a test
run's network capture and saving the synthesized correlation extractors.
"""
import xml.etree.ElementTree as ET
import datetime
import json
import os
from typing import Any, Dict, Tuple
from xml.dom import minidom

from utils.config import load_config

# === Global configuration ===
CONFIG = load_config()
ARTIFACTS_PATH = CONFIG["artifacts"]["artifacts_path"]

CORRELATION_EXTRACTORS_FILE = "correlation_extractors.json"


def get_jmeter_artifacts_dir(run_id: str) -> str:
    """
    Returns the absolute directory path where JMeter artifacts
    (network captures, extractors, JMX fragments) are stored for a given run_id.

    Final layout:
      artifacts/<run_id>/jmeter/
    """
    output_dir = os.path.join(ARTIFACTS_PATH, str(run_id), "jmeter")
    os.makedirs(output_dir, exist_ok=True)
    return output_dir


def get_network_capture_path(run_id: str) -> str:
    """
    Resolve the most recent network capture JSON for a run_id:
      artifacts/<run_id>/jmeter/network-capture/*.json
    """
    base_dir = os.path.join(ARTIFACTS_PATH, str(run_id), "jmeter", "network-capture")
    if not os.path.isdir(base_dir):
        raise FileNotFoundError(f"Network capture directory not found: {base_dir}")

    candidates = [
        os.path.join(base_dir, f)
        for f in os.listdir(base_dir)
        if f.lower().endswith(".json")
    ]
    if not candidates:
        raise FileNotFoundError(f"No network capture JSON files found in: {base_dir}")

    candidates.sort(key=os.path.getmtime, reverse=True)
    return candidates[0]


def load_network_capture(run_id: str) -> Tuple[str, Dict[str, Any]]:
    """
    Load the network capture of a run.

    Returns:
        (capture file path, step label -> list of entries)

    Raises:
        FileNotFoundError: No capture for the run.
        ValueError: The capture is not valid JSON.
    """
    path = get_network_capture_path(run_id)
    with open(path, "r", encoding="utf-8") as f:
        try:
            return path, json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Error parsing '{path}': {e}")


def save_correlation_extractors(run_id: str, data: Dict[str, Any]) -> str:
    """
    Saves the synthesized extractors as:
      artifacts/<run_id>/jmeter/correlation_extractors.json

    Returns the full output file path.
    """
    output_file = os.path.join(get_jmeter_artifacts_dir(run_id), CORRELATION_EXTRACTORS_FILE)
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return output_file


def save_jmx_fragment(root_element: ET.Element, run_id: str) -> str:
    """
    Saves the given XML tree (root_element) as a pretty-printed JMX file
    for the given run_id.

    The file will be stored under:
      artifacts/<run_id>/jmeter/

    The filename will include a timestamp for uniqueness:
      correlation_extractors_<timestamp>.jmx

    Returns the full output file path.
    """
    output_dir = get_jmeter_artifacts_dir(run_id)

    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    output_file = os.path.join(output_dir, f"correlation_extractors_{timestamp}.jmx")

    xml_string = ET.tostring(root_element, encoding="utf-8")
    pretty_xml = minidom.parseString(xml_string).toprettyxml(indent="  ")

    with open(output_file, "w", encoding="utf-8") as f:
        f.write(pretty_xml)

    return output_file
