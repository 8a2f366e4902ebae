"""CSV sink: header, row encoding and storage errors."""
import math
import shutil

import pytest

from catalog_crawler.adapters.base import ProductRecord
from catalog_crawler.config import CrawlConfig
from catalog_crawler.errors import ConfigurationError, WriteError
from catalog_crawler.export.csv_exporter import CsvSink, decode_row

HEADER = "articleNumber;productName;productImage;pricePerDay;description;technicalDetails;link"


@pytest.fixture
def sink(config):
    s = CsvSink(config)
    s.initialize()
    return s


def _lines(sink):
    return sink.file_path.read_text(encoding="utf-8").splitlines()


def _record(**overrides):
    values = dict(
        article_number="1234",
        product_name="Minibagger",
        product_image="https://www.example.com/img/bagger.jpg",
        price_per_day=49.99,
        description="Kompakt",
        technical_details={"Farbe": "Rot"},
        link="https://www.example.com/maschinen/bagger",
    )
    values.update(overrides)
    return ProductRecord(**values)


class TestInitialize:

    def test_creates_missing_directories_and_writes_header(self, tmp_path):
        target = tmp_path / "a" / "b" / "c"
        sink = CsvSink(CrawlConfig(target_host="x", output_path=str(target)))

        sink.initialize()

        assert target.is_dir()
        assert sink.file_path.parent == target.resolve()
        assert sink.file_path.name.startswith("output-")
        assert sink.file_path.suffix == ".csv"
        assert _lines(sink) == [HEADER]

    def test_existing_directory_is_fine(self, config, output_dir):
        output_dir.mkdir(parents=True)

        CsvSink(config).initialize()

        assert output_dir.is_dir()

    def test_new_run_never_overwrites_previous_file(self, config):
        first = CsvSink(config)
        first.initialize()
        first.write(_record())

        second = CsvSink(config)
        second.initialize()

        assert second.file_path != first.file_path
        assert len(_lines(first)) == 2
        assert _lines(second) == [HEADER]

    def test_missing_output_path_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            CsvSink(CrawlConfig(target_host="x")).initialize()

    def test_unwritable_directory_is_write_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(WriteError):
            CsvSink(CrawlConfig(target_host="x", output_path=str(blocker / "sub"))).initialize()


class TestWrite:

    def test_row_follows_header_column_order(self, sink):
        sink.write(_record())

        assert _lines(sink)[1] == (
            '"1234";"Minibagger";"https://www.example.com/img/bagger.jpg";49.99;'
            '"Kompakt";{"Farbe": "Rot"};"https://www.example.com/maschinen/bagger"'
        )

    def test_round_trip_with_delimiters_quotes_and_newlines(self, sink):
        record = _record(
            product_name='Bagger; "Typ A"',
            description="Zeile 1\nZeile 2\nZeile 3\r\nEnde",
            technical_details={"Maße; L x B": 'ca. 2"\n3', "Gewicht": "1,5 t"},
        )

        sink.write(record)

        lines = _lines(sink)
        assert len(lines) == 2
        fields = decode_row(lines[1])
        assert fields == [
            record.article_number,
            record.product_name,
            record.product_image,
            record.price_per_day,
            record.description,
            record.technical_details,
            record.link,
        ]

    def test_naive_split_gives_seven_columns(self, sink):
        sink.write(_record(description="a;b;c"))

        assert len(_lines(sink)[1].split(";")) == 7

    def test_nan_price_is_written_as_null(self, sink):
        sink.write(_record(price_per_day=math.nan))

        assert decode_row(_lines(sink)[1])[3] is None

    def test_rows_are_appended(self, sink):
        for n in range(3):
            sink.write(_record(article_number=str(n)))

        assert [decode_row(line)[0] for line in _lines(sink)[1:]] == ["0", "1", "2"]

    def test_write_before_initialize_is_write_error(self, config):
        with pytest.raises(WriteError):
            CsvSink(config).write(_record())

    def test_directory_removed_mid_run_is_write_error(self, sink, output_dir):
        shutil.rmtree(output_dir)

        with pytest.raises(WriteError):
            sink.write(_record())
