import io

import pytest

from openplant.constants import ACTION_DELETE, ACTION_INSERT
from openplant.dataset import Column, ValueType, decode_row
from openplant.errors import ErrorKind, OpenPlantError
from openplant.mpack import Decoder, unmarshal_value
from openplant.table_mutation import TableMutationRequest
from openplant.table_select import INDEX_INT32_ARRAY, OPER_EQ, ROW_EXTENSION, Filter, Indexes


def _decode_all(payload):
    stream = io.BytesIO(payload)
    decoder = Decoder(stream)
    values = []
    while stream.tell() < len(payload):
        values.append(decoder.decode_value())
    return values


def test_rejects_ambiguous_indexes():
    req = TableMutationRequest(
        table="Point",
        action=ACTION_DELETE,
        key="ID",
        indexes=Indexes(int32=[1001], strings=["W3.N.P1"]),
    )
    with pytest.raises(ValueError):
        req.encode()


@pytest.mark.parametrize("table,action", [("", ACTION_DELETE), ("Point", "")])
def test_requires_table_and_action(table, action):
    with pytest.raises(OpenPlantError) as info:
        TableMutationRequest(table=table, action=action).encode()
    assert info.value.kind == ErrorKind.VALIDATION


def test_rows_require_columns():
    req = TableMutationRequest(table="Point", action=ACTION_INSERT, rows=[{"ID": 1}])
    with pytest.raises(OpenPlantError) as info:
        req.encode()
    assert info.value.kind == ErrorKind.VALIDATION


def test_key_falls_back_to_request_key():
    req = TableMutationRequest(
        table="Point", action=ACTION_DELETE, db="W3", key="ID", indexes=Indexes(int32=[7])
    )
    values = _decode_all(req.encode())
    assert values[-1] is None
    props = values[0]
    assert props["Key"] == "ID"
    assert props["db"] == "W3"
    assert props["Action"] == "Delete"
    assert props["Service"] == "openplant"
    assert props["Indexes"].type == INDEX_INT32_ARRAY
    assert unmarshal_value(props["Indexes"].data) == [7]


def test_index_key_takes_precedence():
    req = TableMutationRequest(
        table="Point", action=ACTION_DELETE, key="ID", indexes=Indexes(key="GN", strings=["W3.N.P1"])
    )
    props = _decode_all(req.encode())[0]
    assert props["Key"] == "GN"


def test_filters_encoded():
    req = TableMutationRequest(
        table="Point", action=ACTION_DELETE, filters=[Filter(left="GN", operator=OPER_EQ, right="W3.N.P1")]
    )
    props = _decode_all(req.encode())[0]
    assert props["Filters"] == [{"L": "GN", "O": 0, "R": "W3.N.P1", "Or": 0}]


def test_rows_encoded_as_extensions():
    columns = [Column(name="ID", type=ValueType.INT32), Column(name="PN", type=ValueType.STRING)]
    rows = [{"ID": 7, "PN": "POINT7"}, {"ID": 8, "PN": "POINT8"}]
    req = TableMutationRequest(table="Point", action=ACTION_INSERT, columns=columns, rows=rows)
    values = _decode_all(req.encode())
    assert len(values) == 3
    props, encoded_rows, terminator = values
    assert terminator is None
    assert [c["Name"] for c in props["Columns"]] == ["ID", "PN"]
    assert [ext.type for ext in encoded_rows] == [ROW_EXTENSION, ROW_EXTENSION]
    assert [decode_row(ext.data, columns) for ext in encoded_rows] == rows


def test_bad_row_value_is_protocol_error():
    columns = [Column(name="Blob", type=ValueType.BINARY)]
    req = TableMutationRequest(table="Point", action=ACTION_INSERT, columns=columns, rows=[{"Blob": "text"}])
    with pytest.raises(OpenPlantError) as info:
        req.encode()
    assert info.value.kind == ErrorKind.PROTOCOL