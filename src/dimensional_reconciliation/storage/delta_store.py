"""
Delta Lake backed staging source and dimension store.

A change set is written with a single ``MERGE`` against the target Delta
table, which Delta commits as one transaction. Expirations and updates are
staged with a merge key equal to the natural key; replacement versions of
expired keys are staged with a null merge key so that they fall through to
the insert clause in the same statement.
"""

from typing import Any, Dict, List, Optional
import logging

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.types import BooleanType, StringType, StructField, StructType, TimestampType
from delta.tables import DeltaTable

from ..common.config import SCDConfig, SCDType
from ..common.exceptions import ApplyFailure
from ..common.models import ApplyResult, ChangeSet, DimensionRecord, StagingRecord
from ..common.utils import ensure_utc
from .base import DimensionStore, StagingSource

logger = logging.getLogger(__name__)

ACTION_COLUMN = "_scd_action"
RUN_TIME_COLUMN = "_scd_run_time"
MERGE_KEY_PREFIX = "_scd_mk_"
SHIFT_PREFIX = "_scd_shift_"


def _quote(column: str) -> str:
    return f"`{column}`"


class DataFrameStagingSource(StagingSource):
    """Staging snapshot read from a Spark DataFrame."""

    def __init__(self, df: DataFrame, config: SCDConfig):
        self.df = df
        self.config = config

    def read_all(self) -> List[StagingRecord]:
        rows = self.df.collect()
        logger.info(f"Collected {len(rows)} staging rows")
        return [StagingRecord.from_row(row.asDict(), self.config) for row in rows]


class DeltaDimensionStore(DimensionStore):
    """Dimension table stored as a Delta table."""

    def __init__(self, config: SCDConfig, spark: SparkSession):
        """
        Initialize DeltaDimensionStore with configuration and Spark session.

        Args:
            config: Dimension configuration
            spark: Spark session
        """
        super().__init__(config)
        self.spark = spark
        self.delta_table = DeltaTable.forName(spark, config.target_table)
        self._snapshot_version: Optional[int] = None

    @property
    def snapshot_version(self) -> Optional[int]:
        return self._snapshot_version

    def read_active(self) -> List[DimensionRecord]:
        version = self._current_version()
        df = self._read_version(version)
        if self.config.scd_type_enum == SCDType.TYPE_2:
            df = df.filter(f"{_quote(self.config.is_current_column)} = true")
        return self._collect(df, version)

    def read_all(self) -> List[DimensionRecord]:
        version = self._current_version()
        return self._collect(self._read_version(version), version)

    def validate_table_schema(self) -> bool:
        """
        Validate that the target table has the columns the configuration needs.

        Returns:
            True if schema is valid, False otherwise
        """
        table_columns = set(self.delta_table.toDF().columns)
        required_columns = (self.config.natural_key_columns + self.config.tracked_columns +
                            [c for c in self.config.metadata_columns()
                             if c != self.config.surrogate_key_column])

        missing_columns = [c for c in required_columns if c not in table_columns]
        if missing_columns:
            logger.error(f"Missing required columns in target table: {missing_columns}")
            return False

        logger.info("Target table schema validation passed")
        return True

    def apply_atomically(self, change_set: ChangeSet) -> ApplyResult:
        """
        Apply a change set with one MERGE statement.

        The snapshot version is checked before the MERGE is issued; Delta
        cannot make a MERGE conditional on the table version. A commit that
        lands between the check and the MERGE is left to Delta's own
        conflict detection and is reported with a warning once the MERGE
        has committed.

        Args:
            change_set: Change set to apply

        Returns:
            ApplyResult with applied counts
        """
        logger.info(f"🚀 ENTER: apply_atomically {change_set.change_set_id}")
        current_version = self._current_version()
        if change_set.snapshot_version is not None and current_version != change_set.snapshot_version:
            raise ApplyFailure(
                f"Change set was derived from version {change_set.snapshot_version} but "
                f"{self.config.target_table} is at version {current_version}",
                change_set_id=change_set.change_set_id)

        staged_df = self._build_staged_updates(change_set)
        try:
            self._merge(staged_df)
        except Exception as e:
            logger.error(f"MERGE into {self.config.target_table} failed: {str(e)}")
            raise ApplyFailure(f"MERGE into {self.config.target_table} failed: {str(e)}",
                               change_set_id=change_set.change_set_id) from e

        committed_version = self._current_version()
        if committed_version > current_version + 1:
            logger.warning(f"{self.config.target_table} moved from version {current_version} to "
                           f"{committed_version} while change set {change_set.change_set_id} was "
                           f"merged; other commits interleaved with this MERGE")

        logger.info(f"✅ Merged change set {change_set.change_set_id} into {self.config.target_table}")
        logger.info("🏁 EXIT: apply_atomically")
        return ApplyResult.from_change_set(change_set)

    def _current_version(self) -> int:
        return self.delta_table.history(1).select("version").collect()[0]["version"]

    def _read_version(self, version: int) -> DataFrame:
        return self.spark.read.option("versionAsOf", version).table(self.config.target_table)

    def _collect(self, df: DataFrame, version: int) -> List[DimensionRecord]:
        records = [DimensionRecord.from_row(row.asDict(), self.config) for row in df.collect()]
        self._snapshot_version = version
        logger.info(f"Retrieved {len(records)} records from {self.config.target_table} "
                    f"at version {version}")
        return records

    def _target_schema(self) -> StructType:
        return self.delta_table.toDF().schema

    def _attribute_columns(self, target_columns: List[str]) -> List[str]:
        managed = set(self.config.natural_key_columns) | set(self.config.metadata_columns())
        return [c for c in target_columns if c not in managed]

    def _build_staged_updates(self, change_set: ChangeSet) -> DataFrame:
        """
        Build one DataFrame holding every effect of the change set.

        Args:
            change_set: Change set to stage

        Returns:
            DataFrame with the target columns plus action, run time, merge key
            and (Type 3) shift flag columns
        """
        target_schema = self._target_schema()
        key_types = {f.name: f.dataType for f in target_schema.fields}

        fields = [StructField(f.name, f.dataType, True) for f in target_schema.fields]
        fields.append(StructField(ACTION_COLUMN, StringType(), False))
        fields.append(StructField(RUN_TIME_COLUMN, TimestampType(), True))
        fields.extend(StructField(f"{MERGE_KEY_PREFIX}{k}", key_types[k], True)
                      for k in self.config.natural_key_columns)
        fields.extend(StructField(f"{SHIFT_PREFIX}{c}", BooleanType(), True)
                      for c in self.config.previous_value_columns)
        staged_schema = StructType(fields)

        run_time = ensure_utc(change_set.run_time)
        expired_keys = set(change_set.expirations)
        rows: List[Dict[str, Any]] = []

        for natural_key in change_set.expirations:
            rows.append(self._staged_row(natural_key, {}, "expire", natural_key, run_time))

        for natural_key, delta in change_set.updates:
            values = dict(delta.attributes)
            for attribute, previous in delta.previous_attributes.items():
                values[self.config.previous_column(attribute)] = previous
                values[f"{SHIFT_PREFIX}{attribute}"] = True
            rows.append(self._staged_row(natural_key, values, "update", natural_key, run_time))

        for record in change_set.inserts:
            # Replacement versions must not match the version they replace
            merge_key = None if record.natural_key in expired_keys else record.natural_key
            values = record.to_row(self.config)
            rows.append(self._staged_row(record.natural_key, values, "insert", merge_key, run_time))

        column_names = staged_schema.fieldNames()
        data = [tuple(row.get(c) for c in column_names) for row in rows]
        logger.info(f"Staged {len(data)} rows for MERGE into {self.config.target_table}")
        return self.spark.createDataFrame(data, staged_schema)

    def _staged_row(self, natural_key, values: Dict[str, Any], action: str,
                    merge_key, run_time) -> Dict[str, Any]:
        row = dict(values)
        row.update(zip(self.config.natural_key_columns, natural_key))
        row[ACTION_COLUMN] = action
        row[RUN_TIME_COLUMN] = run_time
        for index, key_column in enumerate(self.config.natural_key_columns):
            row[f"{MERGE_KEY_PREFIX}{key_column}"] = None if merge_key is None else merge_key[index]
        return row

    def _merge(self, staged_df: DataFrame) -> None:
        """Execute the single MERGE carrying every effect of the change set."""
        target_columns = self._target_schema().fieldNames()
        attribute_columns = self._attribute_columns(target_columns)

        merge_conditions = [f"target.{_quote(k)} = staged.{_quote(MERGE_KEY_PREFIX + k)}"
                            for k in self.config.natural_key_columns]
        if self.config.scd_type_enum == SCDType.TYPE_2:
            merge_conditions.append(f"target.{_quote(self.config.is_current_column)} = true")
        merge_condition = " AND ".join(merge_conditions)

        builder = self.delta_table.alias("target").merge(staged_df.alias("staged"), merge_condition)

        if self.config.scd_type_enum == SCDType.TYPE_2:
            builder = builder.whenMatchedUpdate(
                condition=f"staged.{ACTION_COLUMN} = 'expire'",
                set={
                    self.config.effective_end_column: f"staged.{RUN_TIME_COLUMN}",
                    self.config.is_current_column: "false"
                })
        else:
            update_set = {c: f"staged.{_quote(c)}" for c in attribute_columns}
            for attribute in self.config.previous_value_columns:
                previous_column = self.config.previous_column(attribute)
                update_set[previous_column] = (
                    f"CASE WHEN staged.{_quote(SHIFT_PREFIX + attribute)} "
                    f"THEN staged.{_quote(previous_column)} ELSE target.{_quote(previous_column)} END"
                )
            builder = builder.whenMatchedUpdate(condition=f"staged.{ACTION_COLUMN} = 'update'",
                                                set=update_set)

        insert_values = {c: f"staged.{_quote(c)}" for c in target_columns
                         if c != self.config.surrogate_key_column}
        builder = builder.whenNotMatchedInsert(condition=f"staged.{ACTION_COLUMN} = 'insert'",
                                               values=insert_values)

        logger.info(f"Executing MERGE into {self.config.target_table} on: {merge_condition}")
        builder.execute()
