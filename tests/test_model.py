import dataclasses
import unittest

from bson import DBRef

from docschema import (
    DecodeError,
    DecodeReason,
    EmptyModelError,
    Kind,
    ModelConfig,
    SchemaModel,
)
from docschema.encode import snapshot_to_dict, validate_payload


class SchemaModelScenarioTests(unittest.TestCase):
    def test_flat_documents_share_fields(self) -> None:
        model = SchemaModel()
        model.ingest({"name": "Nori", "type": "Cat"})
        model.ingest({"name": "Chashu", "type": "Cat"})

        snapshot = model.snapshot()
        self.assertEqual(snapshot.document_count, 2)
        self.assertEqual(snapshot.paths(), ["name", "type"])

        name = snapshot.field("name")
        self.assertEqual(name.count, 2)
        self.assertEqual([view.kind for view in name.kinds], [Kind.STRING])
        self.assertEqual(name.kind(Kind.STRING).count, 2)
        self.assertEqual(name.kind("String").samples, ("Nori", "Chashu"))

        kind = snapshot.field("type").kind(Kind.STRING)
        self.assertEqual(kind.count, 2)
        self.assertEqual(kind.samples, ("Cat",))

    def test_polymorphic_field_keeps_one_stat_per_kind(self) -> None:
        model = SchemaModel()
        model.ingest({"name": "Nori"})
        model.ingest({"name": 42})

        name = model.snapshot().field("name")
        self.assertEqual(name.count, 2)
        self.assertEqual([view.kind for view in name.kinds], [Kind.STRING, Kind.INT32])
        self.assertEqual(name.kind(Kind.STRING).count, 1)
        self.assertEqual(name.kind(Kind.INT32).count, 1)
        self.assertAlmostEqual(name.kind(Kind.INT32).probability, 0.5)

    def test_subdocument_recurses_without_a_kind(self) -> None:
        model = SchemaModel()
        model.ingest({"owner": {"name": "Nori"}})

        snapshot = model.snapshot()
        owner = snapshot.field("owner")
        self.assertEqual(owner.count, 1)
        self.assertEqual(owner.kinds, ())

        owner_name = snapshot.field("owner.name")
        self.assertEqual(owner_name.name, "name")
        self.assertEqual(owner_name.count, 1)
        self.assertEqual(owner_name.kind(Kind.STRING).samples, ("Nori",))

    def test_snapshot_of_empty_model_fails(self) -> None:
        with self.assertRaises(EmptyModelError):
            SchemaModel().snapshot()


class SchemaModelPropertyTests(unittest.TestCase):
    def setUp(self) -> None:
        self.documents = [
            {"name": "Nori", "age": 3, "owner": {"name": "Ana", "since": 2019}},
            {"name": "Chashu", "tags": ["calm", "fluffy"]},
            {"name": None, "age": 4.5, "owner": {"name": "Ben"}},
            {"age": 7, "owner": "unknown"},
        ]

    def _ingest_all(self, model: SchemaModel) -> None:
        for document in self.documents:
            model.ingest(document)

    def test_document_count_and_probabilities(self) -> None:
        model = SchemaModel()
        self._ingest_all(model)
        snapshot = model.snapshot()

        self.assertEqual(snapshot.document_count, len(self.documents))
        for view in snapshot.fields:
            self.assertGreaterEqual(view.count, 1)
            self.assertLessEqual(view.count, snapshot.document_count)
            self.assertAlmostEqual(view.probability, view.count / snapshot.document_count)
            for kind in view.kinds:
                self.assertAlmostEqual(kind.probability, kind.count / view.count)
                self.assertGreater(kind.probability, 0.0)
                self.assertLessEqual(kind.probability, 1.0)

        self.assertEqual(snapshot.field("name").count, 3)
        self.assertAlmostEqual(snapshot.field("owner.since").probability, 0.25)
        age_kinds = [view.kind for view in snapshot.field("age").kinds]
        self.assertEqual(age_kinds, [Kind.INT32, Kind.DOUBLE])

    def test_mixed_subdocument_and_leaf_values(self) -> None:
        model = SchemaModel()
        self._ingest_all(model)
        owner = model.snapshot().field("owner")
        self.assertEqual(owner.count, 3)
        self.assertEqual([view.kind for view in owner.kinds], [Kind.STRING])
        self.assertEqual(owner.kind(Kind.STRING).count, 1)

    def test_repeating_documents_keeps_structure(self) -> None:
        model = SchemaModel()
        self._ingest_all(model)
        before = model.snapshot()
        self._ingest_all(model)
        after = model.snapshot()

        self.assertEqual(before.paths(), after.paths())
        for old, new in zip(before.fields, after.fields):
            self.assertEqual(new.count, old.count * 2)
            self.assertEqual([view.kind for view in old.kinds], [view.kind for view in new.kinds])
            for old_kind, new_kind in zip(old.kinds, new.kinds):
                self.assertEqual(new_kind.count, old_kind.count * 2)
                self.assertEqual(new_kind.samples, old_kind.samples)

    def test_same_name_at_different_depths_is_tracked_separately(self) -> None:
        model = SchemaModel()
        model.ingest({"a": {"name": "x"}, "b": {"name": 1}})
        snapshot = model.snapshot()

        self.assertEqual(snapshot.paths(), ["a", "a.name", "b", "b.name"])
        self.assertEqual([view.kind for view in snapshot.field("a.name").kinds], [Kind.STRING])
        self.assertEqual([view.kind for view in snapshot.field("b.name").kinds], [Kind.INT32])

    def test_path_seen_twice_in_one_document_counts_once(self) -> None:
        model = SchemaModel()
        model.ingest({"a.b": 1, "a": {"b": 2}})
        model.ingest({"a": {"b": 3}})

        snapshot = model.snapshot()
        field = snapshot.field("a.b")
        self.assertEqual(field.count, 2)
        kind = field.kind(Kind.INT32)
        self.assertEqual(kind.count, 2)
        self.assertAlmostEqual(kind.probability, 1.0)
        self.assertEqual(kind.samples, (1, 2, 3))
        validate_payload(snapshot_to_dict(snapshot))

    def test_each_kind_counts_once_per_document(self) -> None:
        model = SchemaModel()
        model.ingest({"a.b": 1, "a": {"b": "x"}})

        field = model.snapshot().field("a.b")
        self.assertEqual(field.count, 1)
        self.assertEqual(field.kind(Kind.INT32).count, 1)
        self.assertEqual(field.kind(Kind.STRING).count, 1)

    def test_empty_key_is_a_path_segment(self) -> None:
        model = SchemaModel()
        model.ingest({"": {"x": 1}, "x": "s"})

        snapshot = model.snapshot()
        self.assertEqual(snapshot.paths(), ["", ".x", "x"])
        self.assertEqual(snapshot.field(".x").name, "x")
        self.assertEqual([view.kind for view in snapshot.field(".x").kinds], [Kind.INT32])
        self.assertEqual([view.kind for view in snapshot.field("x").kinds], [Kind.STRING])
        validate_payload(snapshot_to_dict(snapshot))

    def test_database_references_are_walked_as_documents(self) -> None:
        model = SchemaModel()
        model.ingest_json('{"owner": {"$ref": "people", "$id": {"$oid": "5f1d7f0e2a3b4c5d6e7f8091"}}}')
        model.ingest({"owner": DBRef("people", 7, database="club")})

        snapshot = model.snapshot()
        self.assertEqual(snapshot.paths(), ["owner", "owner.$ref", "owner.$id", "owner.$db"])
        self.assertEqual(snapshot.field("owner").kinds, ())
        self.assertEqual(snapshot.field("owner.$ref").kind(Kind.STRING).samples, ("people",))
        id_kinds = [view.kind for view in snapshot.field("owner.$id").kinds]
        self.assertEqual(id_kinds, [Kind.OBJECT_ID, Kind.INT32])
        self.assertAlmostEqual(snapshot.field("owner.$db").probability, 0.5)

    def test_custom_path_separator(self) -> None:
        model = SchemaModel(ModelConfig(path_separator="/"))
        model.ingest({"owner": {"name": "Nori"}})
        self.assertIn("owner/name", model)
        self.assertNotIn("owner.name", model)

    def test_samples_are_bounded_and_distinct(self) -> None:
        model = SchemaModel(ModelConfig(sample_size=3))
        for value in [1, 2, 2, 3, 4, 5, 1]:
            model.ingest({"n": value})

        kind = model.snapshot().field("n").kind(Kind.INT32)
        self.assertEqual(kind.count, 7)
        self.assertEqual(kind.samples, (1, 2, 3))

    def test_arrays_are_opaque_leaves(self) -> None:
        model = SchemaModel()
        model.ingest({"tags": ["a", {"deep": True}]})
        model.ingest({"tags": ["a", {"deep": True}]})

        snapshot = model.snapshot()
        self.assertEqual(snapshot.paths(), ["tags"])
        kind = snapshot.field("tags").kind(Kind.ARRAY)
        self.assertEqual(kind.count, 2)
        self.assertEqual(kind.samples, (["a", {"deep": True}],))


class SchemaModelErrorTests(unittest.TestCase):
    def test_non_document_root_is_rejected(self) -> None:
        model = SchemaModel()
        with self.assertRaises(DecodeError) as ctx:
            model.ingest(["not", "a", "document"])
        self.assertIs(ctx.exception.reason, DecodeReason.NOT_A_DOCUMENT)
        self.assertEqual(model.document_count, 0)

    def test_failed_ingest_leaves_model_unchanged(self) -> None:
        model = SchemaModel()
        model.ingest({"a": 1})

        with self.assertRaises(DecodeError) as ctx:
            model.ingest({"a": 2, "b": "x", "c": {"d": object()}})
        self.assertIs(ctx.exception.reason, DecodeReason.UNSUPPORTED_VALUE)
        self.assertEqual(ctx.exception.path, "c.d")

        self.assertEqual(model.document_count, 1)
        self.assertEqual(list(model.fields), ["a"])
        self.assertEqual(model.fields["a"].count, 1)
        self.assertEqual(model.fields["a"].kinds[Kind.INT32].samples.values, [1])

    def test_values_with_mixed_key_types_are_sampled(self) -> None:
        model = SchemaModel()
        model.ingest({"a": 1, "b": [{1: "x", "y": 2}]})
        model.ingest({"a": 1, "b": [{"y": 2, 1: "x"}]})

        self.assertEqual(model.document_count, 2)
        kind = model.snapshot().field("b").kind(Kind.ARRAY)
        self.assertEqual(kind.count, 2)
        self.assertEqual(kind.samples, ([{1: "x", "y": 2}],))

    def test_uncopyable_sample_leaves_model_unchanged(self) -> None:
        class Uncopyable:
            def __deepcopy__(self, memo):
                raise TypeError("cannot copy")

        model = SchemaModel()
        model.ingest({"a": 1})

        with self.assertRaises(DecodeError) as ctx:
            model.ingest({"a": 2, "tags": [Uncopyable()]})
        self.assertIs(ctx.exception.reason, DecodeReason.UNSUPPORTED_VALUE)
        self.assertEqual(ctx.exception.path, "tags")
        self.assertIsInstance(ctx.exception.__cause__, TypeError)

        self.assertEqual(model.document_count, 1)
        self.assertEqual(list(model.fields), ["a"])
        self.assertEqual(model.fields["a"].count, 1)
        self.assertEqual(model.fields["a"].kinds[Kind.INT32].count, 1)
        self.assertEqual(model.fields["a"].kinds[Kind.INT32].samples.values, [1])

    def test_full_samples_skip_copying(self) -> None:
        class Uncopyable:
            def __deepcopy__(self, memo):
                raise TypeError("cannot copy")

        model = SchemaModel(ModelConfig(sample_size=1))
        model.ingest({"tags": ["first"]})
        model.ingest({"tags": [Uncopyable()]})

        kind = model.snapshot().field("tags").kind(Kind.ARRAY)
        self.assertEqual(kind.count, 2)
        self.assertEqual(kind.samples, (["first"],))

    def test_invalid_json_leaves_model_unchanged(self) -> None:
        model = SchemaModel()
        model.ingest_json('{"name": "Nori"}')
        with self.assertRaises(DecodeError) as ctx:
            model.ingest_json('{"name": ')
        self.assertIs(ctx.exception.reason, DecodeReason.INVALID_JSON)
        with self.assertRaises(DecodeError) as ctx:
            model.ingest_json("[1, 2]")
        self.assertIs(ctx.exception.reason, DecodeReason.NOT_A_DOCUMENT)
        self.assertEqual(model.document_count, 1)


class SnapshotTests(unittest.TestCase):
    def test_snapshot_is_detached_and_frozen(self) -> None:
        model = SchemaModel()
        document = {"tags": ["a"]}
        model.ingest(document)
        first = model.snapshot()

        document["tags"].append("b")
        model.ingest({"tags": ["c"], "extra": True})
        second = model.snapshot()

        self.assertEqual(first.document_count, 1)
        self.assertEqual(first.paths(), ["tags"])
        self.assertEqual(first.field("tags").kind(Kind.ARRAY).samples, (["a"],))
        self.assertEqual(second.document_count, 2)
        self.assertEqual(second.paths(), ["tags", "extra"])
        self.assertAlmostEqual(second.field("extra").probability, 0.5)

        with self.assertRaises(dataclasses.FrozenInstanceError):
            first.document_count = 5  # type: ignore[misc]

    def test_unknown_path_and_kind_raise_key_error(self) -> None:
        model = SchemaModel()
        model.ingest({"a": 1})
        snapshot = model.snapshot()
        with self.assertRaises(KeyError):
            snapshot.field("b")
        with self.assertRaises(KeyError):
            snapshot.field("a").kind(Kind.STRING)


class MergeTests(unittest.TestCase):
    def test_merging_halves_matches_ingesting_everything(self) -> None:
        documents = [
            {"name": "Nori", "owner": {"name": "Ana"}},
            {"name": 42},
            {"name": "Chashu", "age": 3},
            {"owner": {"name": "Ben", "since": 2020}, "age": 4.5},
        ]
        whole = SchemaModel()
        for document in documents:
            whole.ingest(document)

        left, right = SchemaModel(), SchemaModel()
        for document in documents[:2]:
            left.ingest(document)
        for document in documents[2:]:
            right.ingest(document)
        left.merge(right)

        self.assertEqual(left.snapshot().to_dict(), whole.snapshot().to_dict())

    def test_merge_respects_receiving_sample_bound(self) -> None:
        small = SchemaModel(ModelConfig(sample_size=2))
        small.ingest({"n": 1})
        other = SchemaModel()
        for value in range(5):
            other.ingest({"n": value})

        small.merge(other)
        kind = small.snapshot().field("n").kind(Kind.INT32)
        self.assertEqual(kind.count, 6)
        self.assertEqual(kind.samples, (1, 0))
        self.assertEqual(small.document_count, 6)

    def test_merge_into_itself_is_rejected(self) -> None:
        model = SchemaModel()
        with self.assertRaises(ValueError):
            model.merge(model)


if __name__ == "__main__":
    unittest.main()
