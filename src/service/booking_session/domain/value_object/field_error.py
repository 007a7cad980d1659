import attrs


@attrs.define(frozen=True)
class FieldError:
    """Field-level validation message, e.g. field='travelers[1].age'"""

    field: str
    message: str
