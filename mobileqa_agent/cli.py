import argparse
import asyncio
import json
import os
import sys
import traceback
from datetime import datetime

import yaml
from dotenv import load_dotenv

from mobileqa_agent.executor import (
    InvalidInputError,
    JsonFileArtifactSink,
    TransitionAnalysisPipeline,
)
from mobileqa_agent.llm import LLMAnalysisService
from mobileqa_agent.recording import condense_recording, load_recording, validate_threshold
from mobileqa_agent.utils import GetLog


def find_config_file(args_config=None):
    """Intelligently find configuration file."""
    # 1. Command line arguments have highest priority
    if args_config:
        if os.path.isfile(args_config):
            print(f"✅ Using specified config file: {args_config}")
            return args_config
        raise FileNotFoundError(f"❌ Specified config file not found: {args_config}")

    # 2. Search default locations by priority
    current_dir = os.getcwd()
    default_paths = [
        os.path.join(current_dir, "config", "config.yaml"),
        os.path.join(current_dir, "config.yaml"),
        "/app/config/config.yaml",  # Docker container
    ]

    for path in default_paths:
        if os.path.isfile(path):
            print(f"✅ Auto-discovered config file: {path}")
            return path

    print("❌ Config file not found, please check these locations:")
    for path in default_paths:
        print(f"   - {path}")
    raise FileNotFoundError("Config file does not exist")


def load_yaml(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ValueError(f"Failed to read YAML: {e}") from e


def validate_and_build_llm_config(cfg):
    """Validate and build LLM configuration, environment variables take priority over config file."""
    llm_cfg_raw = cfg.get("llm_config") or {}

    api_key = os.getenv("OPENAI_API_KEY") or llm_cfg_raw.get("api_key", "")
    base_url = os.getenv("OPENAI_BASE_URL") or llm_cfg_raw.get("base_url", "")
    model = llm_cfg_raw.get("model", "gpt-4o-mini")
    temperature = llm_cfg_raw.get("temperature", 0.0)
    timeout = llm_cfg_raw.get("timeout", 60)
    top_p = llm_cfg_raw.get("top_p")

    if not api_key:
        raise ValueError(
            "❌ LLM API Key not configured! Please set one of the following:\n"
            "   - Environment variable: OPENAI_API_KEY\n"
            "   - Config file: llm_config.api_key"
        )

    if not base_url:
        print("⚠️  base_url not set, will use OpenAI default address")
        base_url = "https://api.openai.com/v1"

    llm_config = {
        "api": "openai",
        "model": model,
        "api_key": api_key,
        "base_url": base_url,
        "temperature": temperature,
        "timeout": timeout,
    }
    if top_p is not None:
        llm_config["top_p"] = top_p

    api_key_masked = f"{api_key[:8]}...{api_key[-4:]}" if len(api_key) > 12 else "***"
    print("✅ LLM configuration validation successful:")
    print(f"   - API Key: {api_key_masked} ({'Environment variable' if os.getenv('OPENAI_API_KEY') else 'Config file'})")
    print(f"   - Base URL: {base_url}")
    print(f"   - Model: {model}")
    print(f"   - Temperature: {temperature}")

    return llm_config


def build_analysis_options(cfg, sequential=False):
    options = dict(cfg.get("transition_analysis") or {})
    if sequential:
        options["enable_parallel_processing"] = False
    return options


def default_output_path(recording_path):
    output_dir = os.path.join(os.path.dirname(os.path.abspath(recording_path)), "output")
    stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    return os.path.join(output_dir, f"transition_analysis_{stamp}.json")


def print_progress(completed, total):
    print(f"⏳ Analyzed {completed}/{total} transitions")


async def run_analysis(args, cfg):
    llm_config = validate_and_build_llm_config(cfg)

    states = load_recording(args.recording)
    print(f"📥 Loaded {len(states)} recorded states from {args.recording}")

    condense_cfg = cfg.get("condense") or {}
    if args.condense or condense_cfg.get("enabled"):
        states, stats = condense_recording(
            states,
            check_xml=condense_cfg.get("check_xml", True),
            check_screenshot=condense_cfg.get("check_screenshot", True),
            screenshot_threshold=condense_cfg.get("screenshot_threshold", 1.0),
        )
        print(f"🗜️ Condensed recording: removed {stats.removed_state_count} redundant states, {len(states)} remain")

    output_path = args.output or default_output_path(args.recording)
    artifacts_dir = (cfg.get("output") or {}).get("artifacts_dir") or os.path.dirname(output_path)

    options = build_analysis_options(cfg, sequential=args.sequential)
    options["on_progress"] = print_progress

    service = LLMAnalysisService(llm_config)
    pipeline = TransitionAnalysisPipeline(service, artifact_sink=JsonFileArtifactSink(artifacts_dir))
    try:
        results = await pipeline.analyze_transitions(states, options)
    finally:
        await pipeline.drain()
        await service.close()

    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump([r.to_dict() for r in results], f, indent=2, ensure_ascii=False)

    transitions = sum(1 for r in results if r.has_transition)
    errors = sum(1 for r in results if r.is_error)
    print(f"🔢 Total transitions: {len(results)}")
    print(f"✅ Transitions detected: {transitions}")
    print(f"❌ Failed analyses: {errors}")
    print(f"Results written to: {output_path}")
    return results


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Analyze transitions between recorded mobile app states")
    parser.add_argument("recording", help="Recording JSON file (array of recorded states)")
    parser.add_argument("--output", "-o", help="Output JSON file (default: <recording dir>/output/...)")
    parser.add_argument("--config", "-c", help="YAML configuration file path (optional, default auto-search config/config.yaml)")
    parser.add_argument("--condense", action="store_true", help="Drop consecutive states without visible changes first")
    parser.add_argument("--sequential", action="store_true", help="Disable parallel processing")
    return parser.parse_args(argv)


def main(argv=None):
    load_dotenv()
    args = parse_args(argv)

    try:
        config_path = find_config_file(args.config)
        cfg = load_yaml(config_path)
    except (FileNotFoundError, ValueError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    log_cfg = cfg.get("log") or {}
    GetLog.get_log(level=log_cfg.get("level", "info"), log_dir=log_cfg.get("dir", "./logs"))

    try:
        asyncio.run(run_analysis(args, cfg))
    except (FileNotFoundError, InvalidInputError, ValueError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    except Exception:
        print("Transition analysis failed, stack trace:", file=sys.stderr)
        traceback.print_exc()
        return 1
    return 0


def parse_bool(value):
    lowered = str(value).strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got {value!r}")


def default_condensed_path(recording_path):
    base, _ = os.path.splitext(recording_path)
    return f"{base}_condensed.json"


def run_condense(args):
    """Condense a recording file and write it back in recording format."""
    states = load_recording(args.recording)
    print(f"📥 Loaded recording with {len(states)} states from {args.recording}")
    print(f"   - checkXml={args.xml}, checkScreenshot={args.screenshot}, threshold={args.threshold}")

    condensed, stats = condense_recording(
        states,
        check_xml=args.xml,
        check_screenshot=args.screenshot,
        screenshot_threshold=args.threshold,
    )

    output_path = args.output or default_condensed_path(args.recording)
    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump([state.to_recording_entry() for state in condensed], f, indent=2, ensure_ascii=False)

    print(f"Condensed recording saved to: {output_path}")
    print(
        f"🗜️ Reduced from {stats.initial_state_count} to {stats.final_state_count} states "
        f"({stats.removed_state_count} states removed)"
    )
    return output_path, stats


def parse_condense_args(argv=None):
    parser = argparse.ArgumentParser(description="Drop recorded states without visible changes")
    parser.add_argument("recording", help="Recording JSON file (array of recorded states)")
    parser.add_argument("output", nargs="?", help="Output JSON file (default: <recording>_condensed.json)")
    parser.add_argument("--xml", type=parse_bool, default=True, help="Compare page sources (true|false)")
    parser.add_argument("--screenshot", type=parse_bool, default=True, help="Compare screenshots (true|false)")
    parser.add_argument(
        "--threshold", type=float, default=1.0,
        help="Screenshot similarity threshold 0.0-1.0, 1.0 = exact match (default), 0.9 = 90%% similar",
    )
    return parser.parse_args(argv)


def condense_main(argv=None):
    args = parse_condense_args(argv)

    try:
        validate_threshold(args.threshold)
    except InvalidInputError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    GetLog.get_log()

    try:
        run_condense(args)
    except (FileNotFoundError, InvalidInputError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    except Exception:
        print("Condensing failed, stack trace:", file=sys.stderr)
        traceback.print_exc()
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
