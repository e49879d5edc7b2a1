"""
Crawler Agent 示例脚本：打开页面 -> 为指令生成计划 -> 执行计划

依赖安装：
    pip install -e .
    playwright install chromium

运行示例：
    python run_crawler.py https://www.example.com "找到页面标题并提取正文"

未设置 OPENAI_API_KEY 时以降级模式运行（启发式定位 + 固定提取计划）。
"""

import argparse
import asyncio
import json
import logging

from dotenv import load_dotenv

from crawler_agent import AIAgentConfig, AIEnhancedAgent, LLMReasoner
from crawler_agent.browser import available_engines


def build_agent(config: AIAgentConfig) -> AIEnhancedAgent:
    try:
        reasoner = LLMReasoner.from_config(config)
    except ValueError as e:
        logging.getLogger(__name__).warning("%s，使用降级模式", e)
        return AIEnhancedAgent(config)
    return AIEnhancedAgent(config, locator=reasoner, planner=reasoner)


async def run(url: str, instruction: str, config: AIAgentConfig) -> int:
    agent = build_agent(config)
    init = await agent.initialize()
    if not init.success:
        print(f"❌ {init.error}")
        return 1

    try:
        nav = await agent.navigate_to(url)
        if not nav.success:
            print(f"❌ {nav.error}")
            return 1
        await agent.wait_for_navigation()

        planned = await agent.create_plan_for_page(instruction)
        if not planned.success:
            print(f"❌ {planned.error}")
            return 1
        plan = planned.data["plan"]
        print(f"计划 ({planned.data['source']}):")
        print(json.dumps(plan.to_dict(), ensure_ascii=False, indent=2))

        executed = await agent.execute_plan(plan)
        for i, step in enumerate(executed.data["actions"], 1):
            mark = "✓" if step["success"] else "❌"
            detail = step["data"] if step["success"] else step["error"]
            print(f"{mark} Step {i} {step['type']}: {detail}")

        print(f"历史步骤：\n{agent.memory.format_history()}")
        shot = await agent.save_screenshot()
        if shot.success:
            print(f"截图: {shot.data['path']}")
        return 0 if executed.success else 2
    finally:
        await agent.close()


def main() -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Natural-language browser automation")
    parser.add_argument("url")
    parser.add_argument("instruction")
    parser.add_argument("--engine", default=None, choices=available_engines())
    parser.add_argument("--headless", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {"use_autonomous_planning": False}
    if args.engine:
        overrides["engine"] = args.engine
    if args.headless:
        overrides["headless"] = True
    config = AIAgentConfig.from_env(**overrides)
    return asyncio.run(run(args.url, args.instruction, config))


if __name__ == "__main__":
    raise SystemExit(main())
