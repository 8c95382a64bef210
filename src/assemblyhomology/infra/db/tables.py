"""SQLModel table mappings. Only the storage layer imports these."""
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel


class NamespaceRow(SQLModel, table=True):
    __tablename__ = "namespace"

    namespace_id: str = Field(primary_key=True, max_length=256)
    load_id: str = Field(max_length=256)
    data_source_id: str = Field(max_length=256)
    source_database_id: str = Field(max_length=256)
    description: Optional[str] = None
    filter_id: Optional[str] = Field(default=None, max_length=20)
    implementation: str = Field(max_length=256)
    implementation_version: str
    kmer_size: int
    sketch_size: Optional[int] = None
    scaling: Optional[int] = None
    sketch_db_path: str
    sequence_count: int
    modification: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class SequenceMetadataRow(SQLModel, table=True):
    __tablename__ = "sequencemetadata"

    namespace_id: str = Field(primary_key=True, max_length=256)
    load_id: str = Field(primary_key=True, max_length=256)
    sequence_id: str = Field(primary_key=True)
    source_id: str
    scientific_name: Optional[str] = None
    related_ids: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    creation: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
