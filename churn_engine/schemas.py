"""
Data schema definitions for the churn engine.

Uses Pandera for runtime validation of input DataFrames so that bad rows
are rejected at the boundary, before any scorer runs.
"""

from pandera.errors import SchemaError
from pandera.pandas import Column, Check, DataFrameSchema

from .errors import InvalidInputError
from .features import FRAME_COLUMNS, ID_COLUMN, LABEL_COLUMN


_FEATURE_COLUMNS = {
    FRAME_COLUMNS["plan"]: Column(
        str,
        nullable=False,
        checks=Check.isin(["free", "basic", "premium"]),
        description="Subscription plan (free, basic or premium)",
    ),
    FRAME_COLUMNS["days_since_activity"]: Column(
        int,
        nullable=False,
        checks=Check.greater_than_or_equal_to(0),
        description="Days since the customer's last activity",
    ),
    FRAME_COLUMNS["events_last_30"]: Column(
        int,
        nullable=False,
        checks=Check.greater_than_or_equal_to(0),
        description="Events recorded in the last 30 days",
    ),
    FRAME_COLUMNS["revenue_last_30"]: Column(
        float,
        nullable=False,
        checks=Check.greater_than_or_equal_to(0.0),
        description="Revenue in the last 30 days",
    ),
}


# Schema for scoring input data
FEATURES_SCHEMA = DataFrameSchema(
    {
        **_FEATURE_COLUMNS,
        ID_COLUMN: Column(
            nullable=True,
            required=False,
            description="Caller-supplied customer identifier, echoed back",
        ),
    },
    strict=False,  # Allow extra columns
    coerce=True,
    description="Schema for churn scoring input data",
)


# Schema for labelled training data
TRAINING_SCHEMA = DataFrameSchema(
    {
        **_FEATURE_COLUMNS,
        LABEL_COLUMN: Column(
            bool,
            nullable=False,
            description="Whether the customer churned",
        ),
    },
    strict=False,
    coerce=True,
    description="Schema for labelled churn training data",
)


# Schema for scoring output data
PREDICTION_OUTPUT_SCHEMA = DataFrameSchema(
    {
        "PROBABILITY": Column(
            float,
            nullable=False,
            checks=[
                Check.greater_than_or_equal_to(0.0),
                Check.less_than_or_equal_to(1.0),
            ],
        ),
        "WILL_CHURN": Column(bool, nullable=False),
        "RISK_CATEGORY": Column(
            str,
            nullable=False,
            checks=Check.isin(["Low Risk", "Medium Risk", "High Risk"]),
        ),
        "CONFIDENCE": Column(
            float,
            nullable=True,
            checks=[
                Check.greater_than_or_equal_to(0.0),
                Check.less_than_or_equal_to(1.0),
            ],
        ),
    },
    strict=False,
    description="Schema for churn prediction output data",
)


def validate_frame(schema: DataFrameSchema, df):
    """Validate a frame, reporting schema violations as InvalidInputError."""
    try:
        return schema.validate(df)
    except SchemaError as exc:
        column = getattr(exc, "schema", None)
        name = getattr(column, "name", None)
        raise InvalidInputError(
            f"Input failed schema validation: {exc}",
            fields=[name] if isinstance(name, str) else [],
        ) from exc
