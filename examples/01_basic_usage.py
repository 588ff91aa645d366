#!/usr/bin/env python3
"""
Basic Usage Examples - Getting Started with XML Node Stream

This script demonstrates the fundamental usage patterns of the library on the
sample documents in test_data/.

Run with: python examples/01_basic_usage.py
"""

from pathlib import Path
from xml.etree import ElementTree as ET

from xml_node_stream import (
    FileSource,
    IterableSource,
    NodeExtractor,
    NodeStreamer,
    NodeValidator,
    load_config_file,
)


def example_1_children_of_root():
    """Most basic extraction: every child of the root element."""
    print("\n🎯 Example 1: Children of the Root")
    print("=" * 50)

    with FileSource("test_data/simple_records.xml", chunk_size=64) as source:
        for node in NodeExtractor(source):
            record = ET.fromstring(node)
            print(f"📝 record {record.get('id')}: {record.findtext('title')}")


def example_2_deeper_records():
    """Records two levels below the root, using <tag/> elements."""
    print("\n🎯 Example 2: Capture Depth and Self-Closing Tags")
    print("=" * 50)

    streamer = NodeStreamer(chunk_size=1000, capture_depth=2, expect_gt=True)
    for node in streamer.stream_file("test_data/orphanet_sample.xml"):
        disorder = ET.fromstring(node.content)
        print(f"🧬 OrphaNumber {disorder.findtext('OrphaNumber')} "
              f"at byte {node.metadata.offset} ({node.metadata.length} bytes)")


def example_3_config_file():
    """Same extraction driven by a YAML configuration file."""
    print("\n🎯 Example 3: Configuration File")
    print("=" * 50)

    file_config = load_config_file("config_examples/orphanet.yaml")
    streamer = NodeStreamer(chunk_size=file_config.settings.get("chunk_size", 65536), config=file_config.extractor)
    result = streamer.collect_all("test_data/orphanet_sample.xml")

    stats = result.get_summary_stats()
    print(f"📊 {stats['total_nodes']} nodes, peak buffer {stats['peak_buffer_size']} bytes")


def example_4_network_style_pieces():
    """Pieces arriving from a producer, split at arbitrary points."""
    print("\n🎯 Example 4: Iterable Source")
    print("=" * 50)

    pieces = ["<feed><item>on", "e</item><!-- <item>skipped</item> --><it", "em>two</item></feed>"]
    for node in NodeExtractor(IterableSource(pieces)):
        print(f"📦 {node}")


def example_5_validation():
    """Check every node of the sample documents for well-formedness."""
    print("\n🎯 Example 5: Validation")
    print("=" * 50)

    validator = NodeValidator()
    streamer = NodeStreamer(chunk_size=70)
    for path in sorted(Path("test_data").glob("xml_with_*.xml")):
        report = validator.validate_all(streamer.stream_file(path))
        status = "✅" if not report else f"❌ {len(report)} invalid"
        print(f"📁 {path.name}: {status}")


def main():
    """Run all basic examples."""
    print("🚀 BASIC USAGE EXAMPLES")
    print("=" * 60)

    example_1_children_of_root()
    example_2_deeper_records()
    example_3_config_file()
    example_4_network_style_pieces()
    example_5_validation()

    print("\n✅ All basic examples completed!")
    print("💡 Next: Try the CLI: python -m xml_node_stream split test_data/simple_records.xml")


if __name__ == "__main__":
    main()
