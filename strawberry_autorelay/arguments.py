from typing import Optional

from strawberry import UNSET
from strawberry.annotation import StrawberryAnnotation
from strawberry.types.arguments import StrawberryArgument

FIRST_ARG = "first"
AFTER_ARG = "after"
LAST_ARG = "last"
BEFORE_ARG = "before"


def argument(
    name: str,
    type_: type,
    *,
    is_list: bool = False,
    is_optional: bool = False,
    default: object = UNSET,
    description: Optional[str] = None,
):
    argument_type = type_
    if is_list:
        argument_type = list[type_]
    if is_optional:
        argument_type = Optional[type_]  # noqa: UP045

    return StrawberryArgument(
        default=default,
        description=description,
        graphql_name=None,
        python_name=name,
        type_annotation=StrawberryAnnotation(argument_type),
    )


def connection_arguments() -> list[StrawberryArgument]:
    """Return the relay arguments added to every connection field."""
    return [
        argument(
            BEFORE_ARG,
            str,
            is_optional=True,
            default=None,
            description=(
                "Returns the items in the list that come before the specified cursor."
            ),
        ),
        argument(
            AFTER_ARG,
            str,
            is_optional=True,
            default=None,
            description=(
                "Returns the items in the list that come after the specified cursor."
            ),
        ),
        argument(
            FIRST_ARG,
            int,
            is_optional=True,
            default=None,
            description="Returns the first n items from the list.",
        ),
        argument(
            LAST_ARG,
            int,
            is_optional=True,
            default=None,
            description="Returns the last n items from the list.",
        ),
    ]
