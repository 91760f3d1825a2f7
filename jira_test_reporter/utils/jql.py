"""JQL utilities for duplicate searches."""


# Lucene special characters Jira accepts escaped inside a text ~ "..." clause.
# ! ( ) { } ^ ? \ / are not supported by Jira and are left untouched.
SUPPORTED_SPECIAL_CHARS = "+-&|~*"


def escape_jql(text: str) -> str:
    """Escape free text for use inside a quoted JQL text clause.

    Quotes get a single backslash (JQL string escape). Supported Lucene
    special characters get a double backslash, which the JQL string parser
    turns into the single backslash Lucene expects. Parameterized test
    names collapse to one search term by dropping everything from the last
    "[" on.

    Args:
        text: Free text, usually the candidate issue summary.

    Returns:
        str: Escaped text safe to embed between double quotes.

    Examples:
        >>> escape_jql('say "hi"')
        'say \\\\"hi\\\\"'
        >>> escape_jql("testAdd[1]")
        'testAdd'
    """
    result = text.replace("'", "\\'").replace('"', '\\"')
    for char in SUPPORTED_SPECIAL_CHARS:
        result = result.replace(char, "\\\\" + char)

    if "[" in result:
        result = result[: result.rindex("[")]
    return result


def build_duplicate_jql(project_key: str, summary: str) -> str:
    """Build the JQL used to look for an open issue with the given summary.

    Args:
        project_key: Jira project key.
        summary: Candidate issue summary (unescaped).

    Returns:
        str: JQL restricted to unresolved issues of the project.

    Examples:
        >>> build_duplicate_jql("QA", "testAdd[1]")
        'resolution = "unresolved" and project = "QA" and text ~ "testAdd"'
    """
    return (
        f'resolution = "unresolved" and project = "{project_key}" '
        f'and text ~ "{escape_jql(summary)}"'
    )
