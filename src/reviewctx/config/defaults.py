"""Starter .reviewctx.toml template."""

DEFAULT_TOML = """\
# reviewctx configuration
version = "1.0"

[review]
# target = "main"                 # base ref
# source = "feature/my-branch"    # compare ref
instruction = "Review changes."

[ignore]
# Either a list of patterns or a table of pattern = enabled.
project = [".git", "node_modules", "out", "dist", "build", ".vscode", ".idea", ".DS_Store", "coverage"]
# diff = { "*.lock" = true, "package-lock.json" = true }

[output]
format = "terminal"       # terminal | json | prompt
show_tokens = true
"""
