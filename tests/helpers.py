"""
Assertion helpers shared by the test modules.
"""


def codes(bundle):
    """Issue codes of a bundle in emission order."""
    return [issue.code for issue in bundle.issues]


def issues_with(bundle, code):
    """Issues of a bundle carrying the given code."""
    return [issue for issue in bundle.issues if issue.code == code]


def connector_source(body: str, title: str = "Snippet") -> str:
    """Wrap section source in a connector hash with a title and connection."""
    return "{\n  title: '%s',\n  connection: {},\n%s\n}\n" % (title, body)
