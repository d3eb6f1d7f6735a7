#!/usr/bin/env python3
"""
HPLM CLI - Policy Guardrail Runner

Command-line interface for evaluating cases against a ruleset pack and
checking the audit records it produces.

Usage:
    hplm evaluate --ruleset guardrail.yaml --facts case.json --out audit.json
    hplm verify --record audit.json
    hplm replay --record audit.json --ruleset guardrail.yaml
    hplm validate-ruleset --ruleset guardrail.yaml
    hplm ruleset-info --ruleset guardrail.yaml

Exit Codes:
    0   APPROVED        - Case approved / check passed
    2   REJECTED        - Case vetoed by a gate rule
    10  INPUT_INVALID   - Invalid input (facts or record file)
    11  RULESET_ERROR   - Ruleset validation/loading failed
    12  VERIFY_FAIL     - Integrity, signature or replay check failed
    13  CYCLE_DETECTED  - Derivations did not reach a fixpoint
    20  INTERNAL_ERROR  - Unexpected internal error
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from . import __version__
from .config import Settings
from .engine import Evaluator, GuardrailPipeline, compute_integrity_hash, replay_record, verify_record
from .exceptions import (
    AuditRecordError,
    ConfigError,
    CycleDetected,
    HPLMError,
    InvalidFactValueError,
    RulesetLoadError,
    RulesetVersionMismatch,
    SignatureInvalidError,
    ValidationError,
)
from .logging_setup import configure_logging
from .models import AUDIT_FIELDS, AuditRecord, FactSet, Outcome, Ruleset
from .packs import RulesetPackLoader, ruleset_content_hash
from .signing import sign_record, verify_record_signature

logger = logging.getLogger(__name__)


# ============================================================================
# EXIT CODES
# ============================================================================

class ExitCode:
    """Deterministic exit codes for pipeline integration."""
    APPROVED = 0          # Approved / check passed
    REJECTED = 2          # Vetoed by a gate rule
    INPUT_INVALID = 10    # Invalid input files
    RULESET_ERROR = 11    # Ruleset validation/loading failed
    VERIFY_FAIL = 12      # Verification failed
    CYCLE_DETECTED = 13   # No fixpoint within the pass limit
    INTERNAL_ERROR = 20   # Unexpected error


def outcome_to_exit_code(outcome: Outcome) -> int:
    if outcome is Outcome.REJECTED:
        return ExitCode.REJECTED
    return ExitCode.APPROVED


# ============================================================================
# OUTPUT HELPERS
# ============================================================================

class Colors:
    """ANSI color codes for terminal output."""
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BOLD = '\033[1m'
    END = '\033[0m'

    @classmethod
    def disable(cls):
        cls.CYAN = ''
        cls.GREEN = ''
        cls.YELLOW = ''
        cls.RED = ''
        cls.BOLD = ''
        cls.END = ''


def print_header(text: str):
    print(f"\n{Colors.BOLD}{Colors.CYAN}{'='*60}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.CYAN}{text}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.CYAN}{'='*60}{Colors.END}")


def print_success(text: str):
    print(f"{Colors.GREEN}[OK] {text}{Colors.END}")


def print_error(text: str):
    print(f"{Colors.RED}[ERROR] {text}{Colors.END}", file=sys.stderr)


def print_kv(key: str, value: Any, indent: int = 0):
    spaces = "  " * indent
    print(f"{spaces}{Colors.BOLD}{key}:{Colors.END} {value}")


def print_hplm_error(prefix: str, error: HPLMError):
    print_error(f"{prefix}: {error.message}")
    for detail in error.details.get("errors", []):
        print(f"  {Colors.RED}[X]{Colors.END} {detail}", file=sys.stderr)


# ============================================================================
# LOADING
# ============================================================================

def _load_ruleset(path: str) -> Ruleset:
    return RulesetPackLoader().load(path)


def _read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _read_hex_file(path: str) -> bytes:
    return bytes.fromhex(Path(path).read_text(encoding="utf-8").strip())


def _load_record_data(path: Path) -> Optional[dict]:
    """Read an exported record, printing the problem and returning None on failure."""
    if not path.exists():
        print_error(f"Record file not found: {path}")
        return None
    try:
        data = _read_json(path)
    except (OSError, json.JSONDecodeError) as e:
        print_error(f"Record is not valid JSON: {e}")
        return None
    if not isinstance(data, dict):
        print_error("Record must be a JSON object")
        return None
    return data


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_evaluate(args, settings: Settings):
    """Evaluate a fact set against a ruleset and emit the audit record."""
    print_header("HPLM - Evaluate")

    if args.sign and not args.out:
        print_error("--sign requires --out")
        return ExitCode.INPUT_INVALID

    private_key = None
    if args.sign:
        try:
            private_key = _read_hex_file(args.sign)
        except (OSError, ValueError) as e:
            print_error(f"Cannot read signing key: {e}")
            return ExitCode.INPUT_INVALID

    facts_path = Path(args.facts)
    if not facts_path.exists():
        print_error(f"Facts file not found: {facts_path}")
        return ExitCode.INPUT_INVALID

    try:
        ruleset = _load_ruleset(args.ruleset)
    except (ValidationError, RulesetLoadError, RulesetVersionMismatch) as e:
        print_hplm_error("Ruleset rejected", e)
        return ExitCode.RULESET_ERROR

    try:
        facts = FactSet.from_json(_read_json(facts_path))
    except (OSError, json.JSONDecodeError) as e:
        print_error(f"Facts file is not valid JSON: {e}")
        return ExitCode.INPUT_INVALID
    except InvalidFactValueError as e:
        print_hplm_error("Invalid facts", e)
        return ExitCode.INPUT_INVALID

    pipeline = GuardrailPipeline(evaluator=Evaluator(max_passes=settings.max_passes))
    try:
        outcome = pipeline.run(ruleset, facts)
    except InvalidFactValueError as e:
        print_hplm_error("Invalid facts", e)
        print_kv("Fallback", "manual review")
        return ExitCode.INPUT_INVALID
    except CycleDetected as e:
        print_error(e.message)
        print_kv("Still changing", ", ".join(e.details.get("changing_keys", [])))
        print_kv("Fallback", "manual review")
        return ExitCode.CYCLE_DETECTED

    decision = outcome.decision
    record = outcome.record

    print()
    print_kv("Ruleset", f"{ruleset.id or '-'} @ {ruleset.version}")
    print_kv("Passes", outcome.result.trace.passes)
    if decision.is_rejected:
        print(f"  {Colors.RED}{Colors.BOLD}OUTCOME: {decision.outcome.value}{Colors.END}")
        print_kv("Veto reason", decision.veto_reason, indent=1)
    else:
        print(f"  {Colors.GREEN}{Colors.BOLD}OUTCOME: {decision.outcome.value}{Colors.END}")
        print_kv("Required actions", ", ".join(decision.required_actions) or "none", indent=1)
    print_kv("Contributing rules", " -> ".join(decision.contributing_rule_ids) or "none", indent=1)
    unknown = outcome.result.trace.unknown_rule_ids()
    if unknown:
        print_kv("Undetermined rules", ", ".join(unknown), indent=1)
    print_kv("Integrity hash", record.integrity_hash)

    signature = None
    if private_key is not None:
        try:
            signature = sign_record(record, private_key)
        except SignatureInvalidError as e:
            print_hplm_error("Signing failed", e)
            return ExitCode.INPUT_INVALID

    if args.out:
        out_path = Path(args.out)
        out_path.write_text(record.to_json(indent=2) + "\n", encoding="utf-8")
        print_success(f"Audit record written to {out_path}")
        if signature is not None:
            sig_path = out_path.with_name(out_path.name + ".sig")
            sig_path.write_text(signature.hex() + "\n", encoding="utf-8")
            print_success(f"Signature written to {sig_path}")
    else:
        print()
        print(record.to_json(indent=2))

    return outcome_to_exit_code(decision.outcome)


def cmd_verify(args, settings: Settings):
    """Verify an exported audit record's integrity hash (and signature)."""
    print_header("HPLM - Verify Audit Record")

    data = _load_record_data(Path(args.record))
    if data is None:
        return ExitCode.INPUT_INVALID

    missing = [name for name in (*AUDIT_FIELDS, "integrity_hash") if name not in data]
    if missing:
        print_error(f"Record is missing fields: {', '.join(missing)}")
        return ExitCode.VERIFY_FAIL

    valid = verify_record(data)
    print_kv("Stored hash", data.get("integrity_hash"))
    try:
        print_kv("Recomputed hash", compute_integrity_hash(data))
    except (TypeError, ValueError):
        print_kv("Recomputed hash", "unavailable (record is not canonically encodable)")

    if args.signature:
        if not args.public_key:
            print_error("--signature requires --public-key")
            return ExitCode.INPUT_INVALID
        try:
            record = AuditRecord.from_dict(data)
            signature_ok = verify_record_signature(
                record, _read_hex_file(args.public_key), _read_hex_file(args.signature),
            )
        except (AuditRecordError, SignatureInvalidError) as e:
            print_hplm_error("Signature check failed", e)
            return ExitCode.VERIFY_FAIL
        except (OSError, ValueError) as e:
            print_error(f"Cannot read key or signature: {e}")
            return ExitCode.INPUT_INVALID
        print_kv("Signature", "valid" if signature_ok else "INVALID")
        valid = valid and signature_ok

    print()
    if valid:
        print(f"{Colors.GREEN}{Colors.BOLD}VERIFICATION: PASS{Colors.END}")
        return ExitCode.APPROVED
    print(f"{Colors.RED}{Colors.BOLD}VERIFICATION: FAIL{Colors.END}")
    return ExitCode.VERIFY_FAIL


def cmd_replay(args, settings: Settings):
    """Re-run a recorded evaluation and compare the result."""
    print_header("HPLM - Replay Audit Record")

    data = _load_record_data(Path(args.record))
    if data is None:
        return ExitCode.INPUT_INVALID

    try:
        record = AuditRecord.from_dict(data)
    except AuditRecordError as e:
        print_hplm_error("Unreadable record", e)
        return ExitCode.INPUT_INVALID

    try:
        ruleset = _load_ruleset(args.ruleset)
    except (ValidationError, RulesetLoadError, RulesetVersionMismatch) as e:
        print_hplm_error("Ruleset rejected", e)
        return ExitCode.RULESET_ERROR

    result = replay_record(record, ruleset, Evaluator(max_passes=settings.max_passes))
    print_kv("Recorded outcome", record.decision.outcome.value)
    if result.decision is not None:
        print_kv("Replayed outcome", result.decision.outcome.value)

    # The parsed record can normalise away edits; the exported bytes are the evidence
    mismatches = list(result.mismatches)
    if not verify_record(data) and not any("integrity hash" in m for m in mismatches):
        mismatches.insert(0, "Exported record fails its integrity hash")

    print()
    if not mismatches:
        print(f"{Colors.GREEN}{Colors.BOLD}REPLAY: MATCH{Colors.END}")
        return ExitCode.APPROVED
    for mismatch in mismatches:
        print(f"  {Colors.RED}[X]{Colors.END} {mismatch}")
    print(f"{Colors.RED}{Colors.BOLD}REPLAY: MISMATCH{Colors.END}")
    return ExitCode.VERIFY_FAIL


def cmd_validate_ruleset(args, settings: Settings):
    """Validate a ruleset pack file."""
    print_header("HPLM - Validate Ruleset")

    try:
        ruleset = _load_ruleset(args.ruleset)
    except (ValidationError, RulesetLoadError, RulesetVersionMismatch) as e:
        print_hplm_error("Validation failed", e)
        return ExitCode.RULESET_ERROR

    print_success("Ruleset is valid!")
    print_kv("Ruleset ID", ruleset.id)
    print_kv("Version", ruleset.version)
    print_kv("Rules", len(ruleset.rules))
    return ExitCode.APPROVED


def cmd_ruleset_info(args, settings: Settings):
    """Show ruleset contents in evaluation order."""
    print_header("HPLM - Ruleset Info")

    try:
        ruleset = _load_ruleset(args.ruleset)
    except (ValidationError, RulesetLoadError, RulesetVersionMismatch) as e:
        print_hplm_error("Loading failed", e)
        return ExitCode.RULESET_ERROR

    print_kv("Ruleset ID", ruleset.id)
    print_kv("Version", ruleset.version)
    print_kv("Content hash", ruleset_content_hash(ruleset)[:32] + "...")
    if ruleset.description:
        print_kv("Description", ruleset.description.strip())

    print(f"\n{Colors.BOLD}Derivation rules ({len(ruleset.derivation_rules)}):{Colors.END}")
    for rule in ruleset.derivation_rules:
        print(f"  {rule.priority:>5}  {rule.id}")
    print(f"\n{Colors.BOLD}Gate rules ({len(ruleset.gate_rules)}):{Colors.END}")
    for rule in ruleset.gate_rules:
        print(f"  {rule.priority:>5}  {rule.id}")
    print(f"\n{Colors.BOLD}Declared facts ({len(ruleset.fact_types)}):{Colors.END}")
    for key in sorted(ruleset.fact_types):
        print(f"  {key}: {ruleset.fact_types[key].value}")
    return ExitCode.APPROVED


# ============================================================================
# MAIN
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hplm",
        description="HPLM CLI - deterministic policy guardrail evaluation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0   APPROVED        Approved / check passed
  2   REJECTED        Vetoed by a gate rule
  10  INPUT_INVALID   Invalid input files
  11  RULESET_ERROR   Ruleset validation failed
  12  VERIFY_FAIL     Verification failed
  13  CYCLE_DETECTED  No fixpoint within the pass limit

Examples:
  hplm evaluate --ruleset guardrail.yaml --facts case.json --out audit.json
  hplm evaluate --ruleset guardrail.yaml --facts case.json --out audit.json --sign signing.key
  hplm verify --record audit.json --signature audit.json.sig --public-key signing.pub
  hplm replay --record audit.json --ruleset guardrail.yaml
        """
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    eval_parser = subparsers.add_parser("evaluate", help="Evaluate a fact set")
    eval_parser.add_argument("--ruleset", "-r", required=True, help="Ruleset pack YAML/JSON file")
    eval_parser.add_argument("--facts", "-f", required=True, help="Fact set JSON file")
    eval_parser.add_argument("--out", "-o", help="Write the audit record here (prints to stdout if not given)")
    eval_parser.add_argument("--sign", help="Sign the record with a hex Ed25519 private key file (needs --out)")
    eval_parser.set_defaults(func=cmd_evaluate)

    verify_parser = subparsers.add_parser("verify", help="Verify an audit record")
    verify_parser.add_argument("--record", required=True, help="Audit record JSON file")
    verify_parser.add_argument("--signature", help="Hex signature file")
    verify_parser.add_argument("--public-key", help="Hex Ed25519 public key file")
    verify_parser.set_defaults(func=cmd_verify)

    replay_parser = subparsers.add_parser("replay", help="Replay an audit record")
    replay_parser.add_argument("--record", required=True, help="Audit record JSON file")
    replay_parser.add_argument("--ruleset", "-r", required=True, help="Ruleset pack YAML/JSON file")
    replay_parser.set_defaults(func=cmd_replay)

    val_parser = subparsers.add_parser("validate-ruleset", help="Validate a ruleset pack")
    val_parser.add_argument("--ruleset", "-r", required=True, help="Ruleset pack YAML/JSON file")
    val_parser.set_defaults(func=cmd_validate_ruleset)

    info_parser = subparsers.add_parser("ruleset-info", help="Show ruleset information")
    info_parser.add_argument("--ruleset", "-r", required=True, help="Ruleset pack YAML/JSON file")
    info_parser.set_defaults(func=cmd_ruleset_info)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    if not sys.stdout.isatty():
        Colors.disable()

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        settings = Settings.from_env()
    except ConfigError as e:
        print_error(str(e))
        return ExitCode.INPUT_INVALID
    configure_logging(settings.log_level, settings.log_format)

    try:
        return args.func(args, settings)
    except Exception as e:
        logger.exception("Unexpected error in %s", args.command)
        print_error(f"Unexpected error: {e}")
        return ExitCode.INTERNAL_ERROR


if __name__ == "__main__":
    sys.exit(main())
