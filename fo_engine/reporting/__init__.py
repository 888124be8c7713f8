# Run reporting module
from .run_reporter import RunReporter, render_markdown
