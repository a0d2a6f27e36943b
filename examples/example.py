import asyncio
import os
import sys
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from dotenv import load_dotenv
load_dotenv()

from mobileqa_agent.executor import JsonFileArtifactSink, TransitionAnalysisPipeline
from mobileqa_agent.llm import LLMAnalysisService
from mobileqa_agent.recording import condense_recording, load_recording


async def example():
    llm_config = {
        "api": "openai",
        "model": "gpt-4o-mini",
        "api_key": os.getenv("OPENAI_API_KEY"),
        "base_url": os.getenv("OPENAI_BASE_URL"),
    }

    states = load_recording("./recordings/login-flow.json")
    states, stats = condense_recording(states)
    print(f"Removed {stats.removed_state_count} redundant states")

    options = {
        "max_parallel_requests": 3,
        "history_depth": 3,
        "on_progress": lambda done, total: print(f"{done}/{total}"),
    }

    service = LLMAnalysisService(llm_config)
    pipeline = TransitionAnalysisPipeline(service, artifact_sink=JsonFileArtifactSink("./output"))
    try:
        results = await pipeline.analyze_transitions(states, options)
    finally:
        await pipeline.drain()
        await service.close()

    for i, result in enumerate(results):
        if result.is_error:
            print(f"{i + 1}: analysis failed - {result.error_message}")
        elif result.has_transition:
            print(f"{i + 1}: {result.current_page_name} - {result.transition_description}")
        else:
            print(f"{i + 1}: no transition")


if __name__ == "__main__":
    asyncio.run(example())
