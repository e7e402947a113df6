import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from codeharvest.manager import SandboxManager  # noqa: E402
from codeharvest.runtime import InProcessRuntime  # noqa: E402
from codeharvest.sandbox_executor import SandboxExecutor  # noqa: E402

WEB_RESPONSE = """Here is a small page.

### index.html
```html
<html>
<head><title>Demo</title></head>
<body><h1>Hi</h1></body>
</html>
```

### style.css
```css
h1 { color: red; }
```

```javascript:app.js
document.querySelector("h1").textContent = "Hello";
```
"""


@pytest.fixture
def web_response():
    return WEB_RESPONSE


@pytest.fixture
async def executor():
    """Executor backed by an in-process runtime, shut down after each test."""
    executor = SandboxExecutor(InProcessRuntime())
    yield executor
    await executor.shutdown()


@pytest.fixture
async def manager(executor):
    manager = SandboxManager(executor)
    yield manager
    await manager.shutdown()
