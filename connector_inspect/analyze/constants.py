"""
Connector vocabulary: recognized keys, HTTP verbs and required-key sets.
"""

ROOT_KEYS = frozenset(
    {
        "title",
        "version",
        "connection",
        "test",
        "actions",
        "triggers",
        "object_definitions",
        "pick_lists",
        "methods",
        "secure_tunnel",
        "webhook_keys",
        "streams",
        "custom_action",
        "custom_action_help",
    }
)

# Root keys that never produce an unknown_root_key note.
DOCUMENTED_EXTRA_KEYS = frozenset({"title", "description"})

PICK_LIST_KEYS = ("pick_lists", "picklists")

HTTP_VERBS = frozenset({"get", "post", "put", "patch", "delete", "options", "head"})

ACTION_REQUIRED = ("input_fields", "execute", "output_fields")
TRIGGER_REQUIRED = ("input_fields", "output_fields", "dedup")

ACTION_LAMBDA_KEYS = ("input_fields", "execute", "output_fields", "sample_output")
TRIGGER_LAMBDA_KEYS = (
    "poll",
    "webhook_subscribe",
    "webhook_unsubscribe",
    "webhook_notification",
    "input_fields",
    "output_fields",
    "sample_output",
    "dedup",
)

DEFAULT_DANGEROUS_CALLS = ("eval", "system", "exec", "spawn", "instance_eval", "class_eval")

LAMBDA_CONSTRUCTORS = frozenset({"lambda", "proc"})
CAPABILITY_CALL = "call"
ERROR_HANDLER_CALL = "after_error_response"
CHECKPOINT_CALL = "checkpoint!"

# Containers whose members the salvage lexer recovers.
SALVAGE_CONTAINERS = ("actions", "triggers", "methods")
