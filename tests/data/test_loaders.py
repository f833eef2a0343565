"""Unit tests for daily A/B dataset loaders."""

import pytest
import numpy as np
import pandas as pd
from ab_enrollment.data import loaders
from ab_enrollment.exceptions import MissingFileError, ParseError


HEADER = "Date,Pageviews,Clicks,Enrollments,Payments\n"

CONTROL_ROWS = (
    '"Sat, Oct 11",7723,687,134,70\n'
    '"Sun, Oct 12",9102,779,147,70\n'
    '"Mon, Oct 13",10511,909,167,95\n'
    '"Tue, Oct 14",9871,836,,\n'
)

EXPERIMENT_ROWS = (
    '"Sat, Oct 11",7716,686,105,34\n'
    '"Sun, Oct 12",9288,785,116,91\n'
    '"Mon, Oct 13",10480,884,145,79\n'
    '"Tue, Oct 14",9867,827,,\n'
)


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return path


class TestLoadGroupFile:
    """Tests for load_group_file."""

    def test_load_standardizes_columns(self, tmp_path):
        """Test that headers are lower-cased and ordered."""
        path = _write(tmp_path, "control.csv", HEADER + CONTROL_ROWS)

        df = loaders.load_group_file(path)

        assert df.columns.tolist() == loaders.REQUIRED_COLUMNS
        assert len(df) == 4
        assert df.loc[0, 'date'] == "Sat, Oct 11"
        assert df.loc[0, 'pageviews'] == 7723

    def test_missing_outcomes_become_nan(self, tmp_path):
        """Test that blank enrollments and payments are kept as NaN."""
        path = _write(tmp_path, "control.csv", HEADER + CONTROL_ROWS)

        df = loaders.load_group_file(path)

        assert df['enrollments'].isna().sum() == 1
        assert df['payments'].isna().sum() == 1
        assert np.isnan(df.loc[3, 'enrollments'])

    def test_page_views_alias(self, tmp_path):
        """Test that a 'Page Views' header maps to pageviews."""
        text = "Date,Page Views,Clicks,Enrollments,Payments\n" + CONTROL_ROWS
        path = _write(tmp_path, "control.csv", text)

        df = loaders.load_group_file(path)

        assert 'pageviews' in df.columns
        assert df['pageviews'].sum() == 7723 + 9102 + 10511 + 9871

    def test_extra_columns_dropped(self, tmp_path):
        """Test that columns outside the schema are discarded."""
        text = "Date,Pageviews,Clicks,Enrollments,Payments,Notes\n" + '"Sat, Oct 11",1,1,1,1,x\n'
        path = _write(tmp_path, "control.csv", text)

        df = loaders.load_group_file(path)

        assert df.columns.tolist() == loaders.REQUIRED_COLUMNS

    def test_missing_file_raises(self, tmp_path):
        """Test that an absent file raises MissingFileError."""
        with pytest.raises(MissingFileError, match="Dataset not found"):
            loaders.load_group_file(tmp_path / "nope.csv")

    def test_missing_file_is_file_not_found(self, tmp_path):
        """Test that MissingFileError is catchable as FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            loaders.load_group_file(tmp_path / "nope.csv")

    def test_empty_file_raises(self, tmp_path):
        """Test that an empty file raises ParseError."""
        path = _write(tmp_path, "empty.csv", "")

        with pytest.raises(ParseError, match="Could not parse"):
            loaders.load_group_file(path)

    def test_header_only_raises(self, tmp_path):
        """Test that a file with no data rows raises ParseError."""
        path = _write(tmp_path, "header.csv", HEADER)

        with pytest.raises(ParseError, match="no rows"):
            loaders.load_group_file(path)

    def test_missing_column_raises(self, tmp_path):
        """Test that a missing required column raises ParseError."""
        text = "Date,Pageviews,Clicks,Enrollments\n" + '"Sat, Oct 11",7723,687,134\n'
        path = _write(tmp_path, "control.csv", text)

        with pytest.raises(ParseError, match="missing required columns"):
            loaders.load_group_file(path)

    def test_non_numeric_count_raises(self, tmp_path):
        """Test that a non-numeric count raises ParseError."""
        text = HEADER + '"Sat, Oct 11",lots,687,134,70\n'
        path = _write(tmp_path, "control.csv", text)

        with pytest.raises(ParseError, match="Non-numeric value in column 'pageviews'"):
            loaders.load_group_file(path)

    def test_blank_required_value_raises(self, tmp_path):
        """Test that blank clicks raise ParseError."""
        text = HEADER + '"Sat, Oct 11",7723,,134,70\n'
        path = _write(tmp_path, "control.csv", text)

        with pytest.raises(ParseError, match="blank values"):
            loaders.load_group_file(path)

    @pytest.mark.parametrize("row,column", [
        ('"Sat, Oct 11",7723,687,7.9,3\n', 'enrollments'),
        ('"Sat, Oct 11",7723,-687,134,70\n', 'clicks'),
    ])
    def test_invalid_count_raises(self, tmp_path, row, column):
        """Test fractional or negative counts are rejected, not truncated."""
        path = _write(tmp_path, "control.csv", HEADER + row)

        with pytest.raises(ParseError, match=f"negative or fractional counts.*'{column}'"):
            loaders.load_group_file(path)

    def test_integral_float_counts_accepted(self, tmp_path):
        path = _write(tmp_path, "control.csv", HEADER + '"Sat, Oct 11",7723.0,687,134.0,70\n')

        df = loaders.load_group_file(path)

        assert df.loc[0, 'enrollments'] == 134


class TestLoadABData:
    """Tests for load_ab_data."""

    def test_load_from_data_dir(self, tmp_path):
        """Test default file names inside data_dir."""
        _write(tmp_path, loaders.CONTROL_FILE, HEADER + CONTROL_ROWS)
        _write(tmp_path, loaders.EXPERIMENT_FILE, HEADER + EXPERIMENT_ROWS)

        control, experiment = loaders.load_ab_data(data_dir=tmp_path)

        assert len(control) == 4
        assert len(experiment) == 4
        assert experiment.loc[0, 'enrollments'] == 105

    def test_explicit_paths_override(self, tmp_path):
        """Test that explicit paths win over data_dir."""
        c = _write(tmp_path, "Control.csv", HEADER + CONTROL_ROWS)
        e = _write(tmp_path, "Experiment.csv", HEADER + EXPERIMENT_ROWS)

        control, experiment = loaders.load_ab_data(
            control_path=c, experiment_path=e, data_dir=tmp_path / "unused"
        )

        assert control.loc[0, 'clicks'] == 687
        assert experiment.loc[0, 'clicks'] == 686

    def test_missing_experiment_file_raises(self, tmp_path):
        """Test that a missing experiment file propagates MissingFileError."""
        _write(tmp_path, loaders.CONTROL_FILE, HEADER + CONTROL_ROWS)

        with pytest.raises(MissingFileError):
            loaders.load_ab_data(data_dir=tmp_path)


class TestDatasetInfo:
    """Tests for the dataset registry."""

    def test_known_dataset(self):
        info = loaders.get_dataset_info('udacity_ab')
        assert 'citation' in info
        assert info['features'] == loaders.REQUIRED_COLUMNS

    def test_unknown_dataset_raises(self):
        with pytest.raises(ValueError, match="Unknown dataset"):
            loaders.get_dataset_info('criteo')


class TestSyntheticData:
    """Tests for generate_synthetic_ab_data."""

    def test_schema_and_shape(self):
        """Test synthetic frames match the loader schema."""
        control, experiment = loaders.generate_synthetic_ab_data(n_days=20, missing_outcome_days=5)

        for df in (control, experiment):
            assert df.columns.tolist() == loaders.REQUIRED_COLUMNS
            assert len(df) == 20
            assert df['enrollments'].isna().sum() == 5
            assert df['payments'].isna().sum() == 5
            assert df['enrollments'].iloc[:15].notna().all()

    def test_dates_start_on_saturday(self):
        """Test the default start date formats as 'Sat, Oct 11'."""
        control, _ = loaders.generate_synthetic_ab_data()
        assert control.loc[0, 'date'] == "Sat, Oct 11"
        assert control.loc[1, 'date'] == "Sun, Oct 12"

    def test_funnel_is_consistent(self):
        """Test clicks <= pageviews and payments <= enrollments <= clicks."""
        control, experiment = loaders.generate_synthetic_ab_data(missing_outcome_days=0)

        for df in (control, experiment):
            assert (df['clicks'] <= df['pageviews']).all()
            assert (df['enrollments'] <= df['clicks']).all()
            assert (df['payments'] <= df['enrollments']).all()

    def test_reproducible(self):
        """Test the same seed gives identical data."""
        a = loaders.generate_synthetic_ab_data(random_state=7)
        b = loaders.generate_synthetic_ab_data(random_state=7)

        pd.testing.assert_frame_equal(a[0], b[0])
        pd.testing.assert_frame_equal(a[1], b[1])

    def test_invalid_arguments(self):
        with pytest.raises(ValueError, match="n_days must be positive"):
            loaders.generate_synthetic_ab_data(n_days=0)

        with pytest.raises(ValueError, match="missing_outcome_days"):
            loaders.generate_synthetic_ab_data(n_days=5, missing_outcome_days=6)
