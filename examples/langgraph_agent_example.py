"""
Complete end-to-end example: LangGraph agent with codeharvest tools.

This example demonstrates how to create a LangGraph ReAct agent that can:
- Write a small web project as labelled code blocks and save it
- Edit the saved files
- Build a sandboxed preview page
- Run a Python helper script
- Export everything as a ZIP archive

Run this example:
    pip install -e ".[examples]"
    python examples/langgraph_agent_example.py
"""

import asyncio

from dotenv import load_dotenv
from langchain_anthropic import ChatAnthropic
from langgraph.prebuilt import create_react_agent

from codeharvest import SandboxManager
from codeharvest.config import SandboxSettings
from codeharvest.sandbox_executor import SandboxExecutor
from codeharvest.tools import create_sandbox_tools


async def main():
    """Run the example agent."""
    load_dotenv()
    settings = SandboxSettings.from_env(dotenv=False)

    # 1. One manager (and one Python runtime) per process
    manager = SandboxManager(
        SandboxExecutor(settings.create_runtime()),
        default_project_name="counter-app",
    )

    # 2. Create sandbox tools for a specific user/thread
    thread_id = "demo_user_123"
    tools = create_sandbox_tools(manager, thread_id=thread_id, export_dir=settings.export_dir)

    print(f"Created {len(tools)} tools for thread: {thread_id}")
    for tool in tools:
        print(f"  - {tool.name}: {tool.description.split(chr(10))[0]}")

    # 3. Create LangGraph ReAct agent
    llm = ChatAnthropic(model="claude-3-5-sonnet-20241022", temperature=0)
    agent = create_react_agent(llm, tools)

    # 4. Example interactions
    examples = [
        {
            "name": "Build a page",
            "query": """Build a click counter web page with index.html, style.css and app.js.
Write each file as a code block with a '### filename' line above it, then call
extract_files with your response text.""",
        },
        {
            "name": "Edit",
            "query": "Make the counter button blue using str_replace on style.css",
        },
        {
            "name": "Preview",
            "query": "Build the preview page and tell me which styles and scripts it inlined",
        },
        {
            "name": "Python helper",
            "query": "Write stats.py that prints the number of lines in each project file "
            "you know about, then run it with python_run_file",
        },
        {
            "name": "Export",
            "query": "Export the project as a ZIP archive",
        },
    ]

    try:
        for i, example in enumerate(examples, 1):
            print(f"\n{'=' * 70}")
            print(f"Example {i}: {example['name']}")
            print(f"{'=' * 70}")
            print(f"Query: {example['query']}\n")

            result = await agent.ainvoke({"messages": [("user", example["query"])]})

            last_message = result["messages"][-1]
            print(f"Response: {last_message.content}\n")
    finally:
        # 5. Cleanup
        await manager.shutdown()

    print("\nFiles in the project:")
    for record in manager.get_session(thread_id).filesystem.list_files():
        print(f"  {record.filename} ({record.language})")
    print("\nDemo complete!")


if __name__ == "__main__":
    asyncio.run(main())
