"""Formal pipeline invariants.

This file documents what each stage MUST produce. It is the reviewer anchor
for the state machine Init -> Validating -> Staging -> Composing ->
Executing -> Success | Failed.
"""

PIPELINE_INVARIANTS = {
    "validating": [
        "Every option has a default or was supplied",
        "Values are range- and format-checked before any file is touched",
        "Errors name the offending flag",
    ],

    "staging": [
        "Input exists, is a regular file, is readable and non-empty",
        "Cached copy lives inside a private per-run arena directory",
        "Width and height are known and positive",
    ],

    "composing": [
        "Steps are strictly ordered; each input is produced before it is read",
        "Staged input buffers are never rebound",
        "Identical options and staged images give identical pipelines",
    ],

    "executing": [
        "Steps run one at a time; the first failure aborts the rest",
        "Output is moved into place only after every step succeeded",
        "The arena is removed on success, failure and signal alike",
    ],
}

# Stages the runner walks through; none may be skipped
STAGE_REQUIREMENTS = {
    "validating": "REQUIRED",
    "staging": "REQUIRED",
    "composing": "REQUIRED",
    "executing": "REQUIRED",
}
