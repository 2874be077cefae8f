from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A single environment setting a client needs before it can be used.

    Attributes:
        env_key (str): The raw key, without the "<TYPE>_<ENGINE>_" prefix (e.g. "API_KEY").
        val_type (str): Expected value type: "string", "number", "bool" or "list".
        default (str | int | bool | list | None): Fallback if unset. None makes the setting mandatory,
            so a missing value fails client construction.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None
