"""Database interaction layer for exporting survey results."""

from datetime import datetime
from typing import Dict

from peewee import chunked
from playhouse.sqlite_ext import (
    SqliteExtDatabase,
    Model,
    CharField,
    TimestampField,
    IntegerField,
    CompositeKey,
)

from ktrawler.analyzers import AggregationSession


class Database:
    """Stores the FeatureCounters of finished surveys in an sqlite
    database.

    Each saved session replaces the results of any previous one.

    """

    def __init__(self, filepath: str):
        self.filepath = filepath
        self.db = SqliteExtDatabase(self.filepath)

        class BaseModel(Model):
            class Meta:
                database = self.db

        class FeatureCounterModel(BaseModel):
            class Meta:
                table_name = 'feature_counter'

            updated = TimestampField()
            position = IntegerField()
            feature_key = CharField(unique=True)
            feature_name = CharField()
            occurrence_count = IntegerField()
            project_count = IntegerField()

        class FeatureUsageModel(BaseModel):
            class Meta:
                table_name = 'feature_usage'
                primary_key = CompositeKey(
                    'feature_key',
                    'position',
                )

            feature_key = CharField()
            position = IntegerField()
            project = CharField()
            # null path indicates an occurrence outside any file.
            path = CharField(null=True)
            line = IntegerField()

        class RunTotalsModel(BaseModel):
            class Meta:
                table_name = 'run_totals'

            updated = TimestampField()
            repositories_analyzed = IntegerField()
            files_analyzed = IntegerField()
            lines_analyzed = IntegerField()

        self.FeatureCounterModel = FeatureCounterModel
        self.FeatureUsageModel = FeatureUsageModel
        self.RunTotalsModel = RunTotalsModel
        self.tables = [self.FeatureCounterModel, self.FeatureUsageModel, self.RunTotalsModel]

    def initialize(self):
        """Connect to the database and initialize the schema."""
        self.db.connect(reuse_if_open=True)
        self.db.create_tables(self.tables)

    def close(self):
        """Close the database."""
        self.db.close()

    def save_session(self, session: AggregationSession) -> None:
        """Replace any stored results with the totals, counters and usages of
        the given session."""
        updated = datetime.now()
        with self.db.atomic():
            for table in self.tables:
                table.delete().execute()
            self.RunTotalsModel.create(
                updated=updated,
                repositories_analyzed=session.repositories_analyzed,
                files_analyzed=session.files_analyzed,
                lines_analyzed=session.lines_analyzed,
            )
            for position, (feature_key, counter) in enumerate(session.counters.items()):
                self.FeatureCounterModel.create(
                    updated=updated,
                    position=position,
                    feature_key=feature_key,
                    feature_name=counter.name,
                    occurrence_count=counter.count,
                    project_count=len(counter.projects),
                )
                usage_rows = [
                    {
                        'feature_key': feature_key,
                        'position': usage_position,
                        'project': usage.project,
                        'path': usage.path,
                        'line': usage.line,
                    }
                    for usage_position, usage in enumerate(counter.usages)
                ]
                for batch in chunked(usage_rows, 100):
                    self.FeatureUsageModel.insert_many(batch).execute()

    def get_feature_counts(self) -> Dict[str, int]:
        """Returns the saved occurrence count of each feature, keyed by
        feature key in report order."""
        rows = (self.FeatureCounterModel
                .select(self.FeatureCounterModel.feature_key, self.FeatureCounterModel.occurrence_count)
                .order_by(self.FeatureCounterModel.position))
        return {row.feature_key: row.occurrence_count for row in rows}

    def get_usage_count(self, feature_key: str) -> int:
        """Returns the number of saved usages of a feature."""
        return (self.FeatureUsageModel
                .select()
                .where(self.FeatureUsageModel.feature_key == feature_key)
                .count())
