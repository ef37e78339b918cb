from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """
    Base des schémas de l'API : les champs sont en snake_case côté Python
    et exposés en camelCase dans le JSON (les deux formes sont acceptées en entrée)
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def strip_required(value):
    """Retire les espaces ; une chaîne vide après nettoyage est refusée"""
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("ne peut pas être vide")
    return value
