"""Pydantic models for the embryo records exchanged between filters."""

from pydantic import BaseModel


class Embryo(BaseModel):
    properties: dict[str, str]


class EmbryoList(BaseModel):
    embryo_list: list[Embryo] = []
