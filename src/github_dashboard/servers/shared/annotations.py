from typing import Annotated

from pydantic import Field

from github_dashboard.dashboard.query import SortOrder

REPOSITORY_ID = Annotated[int, Field(description="The unique identifier of the repository.")]

SEARCH_TERM = Annotated[
    str, Field(description="Only include repositories whose name, visibility or language contains this text, ignoring case.")
]
SORT_ORDER = Annotated[
    SortOrder,
    Field(
        description="The order of the repositories: `name` (A to Z), `created` (newest first) or `updated` (most recently updated first)."
    ),
]

CODE_SNIPPET = Annotated[str, Field(description="The code to review.")]
