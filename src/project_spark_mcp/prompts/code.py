"""Code-help prompt templates (plain-text responses).

Each template takes {language}; GENERATE_CODE also takes {request} and
{context}, PROJECT_STRUCTURE takes {project_type} and {requirements}, the
others take {code}.
"""

from __future__ import annotations

GENERATE_CODE = """\
Generate {language} code for the following request:

{request}

{context}

Please provide clean, well-commented code with proper error handling."""

ANALYZE_CODE = """\
Analyze the following {language} code and provide:
1. Code quality assessment
2. Potential issues or bugs
3. Performance suggestions
4. Best practices recommendations
5. Security considerations

Code to analyze:
```{language}
{code}
```"""

EXPLAIN_CODE = """\
Explain the following {language} code in simple terms:

```{language}
{code}
```

Please provide:
1. What the code does
2. How it works step by step
3. Key concepts used
4. Potential use cases"""

PROJECT_STRUCTURE = """\
Generate a project structure for a {project_type} project with the following requirements:

{requirements}

Please provide:
1. Folder structure
2. Key files and their purposes
3. Recommended dependencies
4. Basic setup instructions"""

# (temperature, max_output_tokens) per code-help action
CODE_HELP_SETTINGS: dict[str, tuple[float, int]] = {
    "generate": (0.7, 2048),
    "analyze": (0.3, 2048),
    "explain": (0.5, 1024),
    "structure": (0.6, 2048),
}
