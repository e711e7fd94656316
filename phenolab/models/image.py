"""
Image metadata domain model (document store)
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Set

from phenolab.models.entity import ConcernedItem, Entity, concerned_uris
from phenolab.utils.datetime_utils import parse_stored_datetime, to_iso
from phenolab.vocabulary import OESO_IMAGE


@dataclass
class ShootingConfiguration:
    """When, where and with what sensor the image was taken"""
    date: Optional[datetime] = None
    position: Optional[str] = None
    sensor: Optional[str] = None
    timestamp: Optional[int] = None  # epoch millis of insertion


@dataclass
class FileInformation:
    """Where the image file lives on the file server"""
    extension: Optional[str] = None
    checksum: Optional[str] = None
    server_file_path: Optional[str] = None


@dataclass
class ImageMetadata(Entity):
    """
    Metadata of an image file. Primary record is a document in the
    'images' collection; type and concerned items are mirrored in the graph.
    """
    rdf_type: Optional[str] = OESO_IMAGE
    concerned_items: List[ConcernedItem] = field(default_factory=list)
    configuration: ShootingConfiguration = field(default_factory=ShootingConfiguration)
    file_information: FileInformation = field(default_factory=FileInformation)

    @property
    def concerned_item_uris(self) -> Set[str]:
        return concerned_uris(self.concerned_items)

    def to_document(self) -> dict:
        return {
            'uri': self.uri,
            'rdfType': self.rdf_type,
            'concernedItems': [
                {'uri': item.uri, 'rdfType': item.rdf_type}
                for item in self.concerned_items
            ],
            'configuration': {
                'date': to_iso(self.configuration.date),
                'position': self.configuration.position,
                'sensor': self.configuration.sensor,
                'timestamp': self.configuration.timestamp,
            },
            'storage': {
                'extension': self.file_information.extension,
                'md5sum': self.file_information.checksum,
                'serverFilePath': self.file_information.server_file_path,
            },
        }

    @classmethod
    def from_document(cls, doc: dict) -> 'ImageMetadata':
        configuration = doc.get('configuration') or {}
        storage = doc.get('storage') or {}
        return cls(
            uri=doc.get('uri'),
            rdf_type=doc.get('rdfType'),
            concerned_items=[
                ConcernedItem(uri=item['uri'], rdf_type=item.get('rdfType'))
                for item in doc.get('concernedItems', [])
            ],
            configuration=ShootingConfiguration(
                date=parse_stored_datetime(configuration.get('date')),
                position=configuration.get('position'),
                sensor=configuration.get('sensor'),
                timestamp=configuration.get('timestamp'),
            ),
            file_information=FileInformation(
                extension=storage.get('extension'),
                checksum=storage.get('md5sum'),
                server_file_path=storage.get('serverFilePath'),
            ),
        )
