"""
Tests for the document-store repositories: image metadata and provenances.
"""
from datetime import datetime, timezone

import pytest

from phenolab.exceptions import QueryError
from phenolab.models import (
    ConcernedItem,
    FileInformation,
    ImageMetadata,
    Provenance,
    ReasonCode,
    SearchCriteria,
    ShootingConfiguration,
    User,
)
from phenolab.query.terms import IRI
from phenolab.tests.fakes import CAMERA_1, PLOT, PLOT_42, PLOT_7, RGB_IMAGE
from phenolab.vocabulary import OEEV_CONCERNS, RDF_TYPE

ADMIN = User(uri="http://www.phenome-fppn.fr/test/users/admin", admin=True)


def image(plot=PLOT_42, day=5, sensor=CAMERA_1, rdf_type=RGB_IMAGE, path="/images/2019/a.png"):
    return ImageMetadata(
        rdf_type=rdf_type,
        concerned_items=[ConcernedItem(plot, PLOT)],
        configuration=ShootingConfiguration(
            date=datetime(2019, 3, day, 8, 30, tzinfo=timezone.utc),
            position="top",
            sensor=sensor,
        ),
        file_information=FileInformation(extension="png", checksum="9e107d9d372bb6826bd81d3542a419d6",
                                         server_file_path=path),
    )


@pytest.fixture
def images(access):
    return access.images


@pytest.fixture
def provenances(access):
    return access.provenances


class TestImages:
    @pytest.mark.asyncio
    async def test_create_and_get(self, images, graph, relational):
        created, error = await images.create([image()], ADMIN)
        assert error is None
        uri = created[0]

        stored = await images.get_by_id(uri)
        assert stored.uri == uri
        assert stored.rdf_type == RGB_IMAGE
        assert stored.concerned_item_uris == {PLOT_42}
        assert stored.configuration.sensor == CAMERA_1
        assert stored.configuration.date == datetime(2019, 3, 5, 8, 30, tzinfo=timezone.utc)
        assert stored.configuration.timestamp is not None
        assert stored.file_information.server_file_path == "/images/2019/a.png"

        assert (IRI(uri), RDF_TYPE, IRI(RGB_IMAGE)) in graph.triples
        assert (IRI(uri), OEEV_CONCERNS, IRI(PLOT_42)) in graph.triples
        assert relational.records[uri]['entity_type'] == 'image'

    @pytest.mark.asyncio
    async def test_search(self, images):
        created, _ = await images.create([image(PLOT_42, 5), image(PLOT_7, 20)], ADMIN)

        by_item, total = await images.search(SearchCriteria(related_item_uri=PLOT_7))
        assert [i.uri for i in by_item] == [created[1]]
        assert total == 1

        by_date, _ = await images.search(SearchCriteria(start="2019-03-01", end="2019-03-05"))
        assert [i.uri for i in by_date] == [created[0]]

        by_sensor, total = await images.search(SearchCriteria(sensor=CAMERA_1, rdf_type=RGB_IMAGE))
        assert total == 2

        page, total = await images.search(SearchCriteria(page=1, page_size=1))
        assert len(page) == 1
        assert total == 2
        assert await images.count(SearchCriteria()) == 2

    @pytest.mark.asyncio
    async def test_inverted_date_range(self, images):
        with pytest.raises(QueryError):
            await images.search(SearchCriteria(start="2019-04-01", end="2019-03-01"))

    @pytest.mark.asyncio
    async def test_validation(self, images):
        errors = await images.validate([
            image(sensor=PLOT_42),
            image(path=None),
            image(rdf_type=PLOT),
            image(plot="http://www.phenome-fppn.fr/test/plots/unknown"),
        ], ADMIN)

        assert [(e.entity_index, e.reason) for e in errors] == [
            (0, ReasonCode.WRONG_TYPE),
            (1, ReasonCode.MISSING_FIELD),
            (2, ReasonCode.WRONG_TYPE),
            (3, ReasonCode.UNKNOWN_URI),
        ]

    @pytest.mark.asyncio
    async def test_failed_registration_removes_document(self, images, graph, documents, relational):
        relational.fail_insert = True

        created, error = await images.create([image()], ADMIN)

        assert created == []
        failure = error.write_errors[0]
        assert failure.failed_step == "register image"
        assert failure.compensation.undone == ["insert image type", "insert image metadata"]
        assert documents.collections['images'] == {}
        assert graph.about(failure.entity_uri) == set()


class TestProvenances:
    @pytest.mark.asyncio
    async def test_create_and_search(self, provenances, relational):
        created, error = await provenances.create([
            Provenance(label="Field scan 2019", comment="drone flight",
                       metadata={"software": "PhenoScan", "version": "2.1"}),
            Provenance(label="Greenhouse imaging", comment="conveyor cabin",
                       metadata={"software": "ImageJ"}),
        ], ADMIN)
        assert error is None
        assert relational.records[created[0]]['label'] == "Field scan 2019"

        by_label, total = await provenances.search(SearchCriteria(label="scan"))
        assert [p.uri for p in by_label] == [created[0]]
        assert total == 1

        by_comment, _ = await provenances.search(SearchCriteria(comment="CABIN"))
        assert [p.uri for p in by_comment] == [created[1]]

        by_metadata, _ = await provenances.search(SearchCriteria(json_filter={"software": "PhenoScan"}))
        assert [p.metadata["version"] for p in by_metadata] == ["2.1"]

        assert await provenances.count(SearchCriteria()) == 2

    @pytest.mark.asyncio
    async def test_label_is_required(self, provenances):
        created, error = await provenances.create(
            [Provenance(label="ok"), Provenance(comment="no label")], ADMIN
        )

        assert len(created) == 1
        assert [(e.entity_index, e.reason) for e in error.validation_errors] == [
            (1, ReasonCode.MISSING_FIELD)
        ]

    @pytest.mark.asyncio
    async def test_get_by_id(self, provenances):
        created, _ = await provenances.create([Provenance(label="p")], ADMIN)

        assert (await provenances.get_by_id(created[0])).label == "p"
        assert await provenances.get_by_id("http://www.phenome-fppn.fr/test/id/provenances/x") is None
