#!/usr/bin/env python3
"""
X12 Translator Command Line Tool

Translates business documents (JSON) into X12 interchanges and X12
interchanges back into JSON documents.

Usage:
    python main.py 850 order.json --sender ACME --receiver RETAILER            # JSON -> order.x12
    python main.py 850 order.json -o out.x12 --sender ACME --receiver RETAILER
    python main.py 820 remit.x12 --sender BANK --receiver ACME                 # X12 -> remit.json
    python main.py 940 wso.json --sender ACME --receiver 3PL --settings settings
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Try importing from installed package first, fallback to src path
try:
    from envelope_settings import PartnerSettingsManager
    from errors import PayloadValidationError, TranslationError
    from transaction_log import JsonLinesTransactionStore, TransactionRecorder
    from translation_service import TranslationService, infer_direction
    from x12_defs import Direction, TransactionType
except ImportError:
    # Add src to path for imports when not installed
    sys.path.insert(0, str(Path(__file__).parent / "src"))
    from envelope_settings import PartnerSettingsManager
    from errors import PayloadValidationError, TranslationError
    from transaction_log import JsonLinesTransactionStore, TransactionRecorder
    from translation_service import TranslationService, infer_direction
    from x12_defs import Direction, TransactionType

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s:%(lineno)d] - %(message)s"


def load_payload(input_file: str):
    """X12 text is passed through as-is; anything else must be a JSON document."""
    with open(input_file, 'r') as f:
        content = f.read()
    if content.strip().startswith('ISA'):
        return content
    return json.loads(content)


def translate_file(args) -> int:
    """Translate one file and write the result."""

    print(f"X12 Translator - {args.transaction_type} from {args.input_file}")
    print("=" * 50)

    recorder = None
    try:
        payload = load_payload(args.input_file)
        direction = infer_direction(payload)
        print(f"Direction: {direction.value}")

        settings_manager = PartnerSettingsManager(args.settings) if args.settings else None
        if args.log_file:
            recorder = TransactionRecorder(JsonLinesTransactionStore(args.log_file))

        service = TranslationService(recorder=recorder, settings_manager=settings_manager)
        result = service.process_transaction(args.transaction_type, args.sender, args.receiver, payload)

        if direction == Direction.OUTBOUND:
            output = result
            default_suffix = '.x12'
        else:
            output = result.model_dump_json(indent=2, by_alias=True)
            default_suffix = '.json'

        output_file = args.output_file or str(Path(args.input_file).with_suffix(default_suffix))
        with open(output_file, 'w') as f:
            f.write(output)

        print(f"Output saved to: {output_file}")
        print(f"Output size: {len(output):,} characters")
        return 0

    except FileNotFoundError as e:
        print(f"Error: File not found: {e}")
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: Input is neither X12 nor valid JSON: {e}")
        return 1
    except PayloadValidationError as e:
        print(f"Error: {e}")
        for i, issue in enumerate(e.issues[:5]):  # Show first 5 issues
            print(f"  {i+1}. {issue.path}: {issue.message}")
        if len(e.issues) > 5:
            print(f"  ... and {len(e.issues) - 5} more issues")
        return 1
    except TranslationError as e:
        print(f"Error: {e}")
        return 1
    finally:
        if recorder is not None:
            recorder.close()


def main():
    """Main entry point with command line argument parsing."""

    parser = argparse.ArgumentParser(
        description="Translate between JSON business documents and X12 interchanges",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py 850 order.json --sender ACME --receiver RETAILER     # order.json -> order.x12
  python main.py 214 status.x12 --sender CARRIER --receiver ACME      # status.x12 -> status.json
  python main.py 810 inv.json -o inv.edi --sender ACME --receiver RETAILER --log-file log.jsonl
        """
    )

    parser.add_argument('transaction_type', choices=[t.value for t in TransactionType],
                        help='Transaction set code')
    parser.add_argument('input_file', help='Input JSON document or X12 file')
    parser.add_argument('-o', '--output', dest='output_file',
                        help='Output file (default: input file with .x12 or .json suffix)')
    parser.add_argument('--sender', required=True, help='Interchange sender id')
    parser.add_argument('--receiver', required=True, help='Interchange receiver id')
    parser.add_argument('--settings', help='Directory holding default.json and partners/*.json')
    parser.add_argument('--log-file', help='Append a JSON-lines transaction record here')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format=LOG_FORMAT)

    # Check if input file exists
    if not Path(args.input_file).exists():
        print(f"Error: Input file not found: {args.input_file}")
        return 1

    return translate_file(args)


if __name__ == "__main__":
    exit(main())
