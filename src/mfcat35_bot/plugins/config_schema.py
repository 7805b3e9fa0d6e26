"""Plugin configuration schema framework.

Plugins describe their settings as a Pydantic model deriving from
``PluginConfigSchema``. Validation happens in ``BasePlugin.load_config`` via
``model_validate``, so field validators on the schema run when the bot starts.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel
from pydantic_core import PydanticUndefined


class PluginConfigSchema(BaseModel):
    """Base class for plugin configuration schemas.

    Example:
        ```python
        from pydantic import Field

        class MyPluginConfig(PluginConfigSchema):
            api_url: str = Field(
                default="https://example.com/api",
                alias="apiUrl",
                description="API endpoint",
            )
        ```
    """

    model_config = {"populate_by_name": True}

    @classmethod
    def generate_template(cls) -> dict[str, Any]:
        """Generate a configuration template keyed as in configuration files.

        Fields are keyed by alias where one is set; required fields map to None.
        """
        template: dict[str, Any] = {}
        for name, field_info in cls.model_fields.items():
            if field_info.default_factory is not None:
                default = field_info.default_factory()
            elif field_info.default is PydanticUndefined:
                default = None
            else:
                default = field_info.default
            template[field_info.alias or name] = default
        return template
