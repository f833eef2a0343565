"""Unit tests for invariant metric sanity checks."""

import pytest
from ab_enrollment.core import randomization


class TestInvariantCheck:
    """Tests for invariant_check."""

    def test_perfect_balance(self):
        """Test check with a perfect 50/50 split."""
        result = randomization.invariant_check(n_control=5000, n_treatment=5000, metric='clicks')

        assert result['metric'] == 'clicks'
        assert result['ratio_control'] == 0.5
        assert result['p_value'] == 1.0
        assert result['passed']

    def test_udacity_pageviews_pass(self):
        """Test the course-page pageview totals pass."""
        result = randomization.invariant_check(345543, 344660, metric='pageviews')

        assert result['ci_lower'] < result['ratio_control'] < result['ci_upper']
        assert not result['statistically_significant']
        assert result['passed']

    def test_large_imbalance_fails(self):
        """Test a 53/47 split fails both stages."""
        result = randomization.invariant_check(n_control=53000, n_treatment=47000)

        assert result['statistically_significant']
        assert result['pp_deviation'] == pytest.approx(0.03)
        assert not result['passed']

    def test_statistical_but_not_practical(self):
        """Test a significant 50.5/49.5 split still passes the practical gate."""
        result = randomization.invariant_check(n_control=505000, n_treatment=495000)

        assert result['statistically_significant']
        assert result['pp_deviation'] < 0.01
        assert result['passed']

    def test_acceptance_interval_symmetric(self):
        result = randomization.invariant_check(10000, 10000)

        assert 0.5 - result['ci_lower'] == pytest.approx(result['ci_upper'] - 0.5)

    def test_custom_ratio(self):
        """Test a 70/30 allocation."""
        result = randomization.invariant_check(7000, 3000, expected_ratio=[0.7, 0.3])

        assert result['expected_control_ratio'] == 0.7
        assert result['passed']

    def test_invalid_inputs(self):
        """Test error handling for invalid inputs."""
        with pytest.raises(ValueError, match="Counts must be positive"):
            randomization.invariant_check(n_control=0, n_treatment=1000)

        with pytest.raises(ValueError, match="must sum to 1.0"):
            randomization.invariant_check(5000, 5000, expected_ratio=[0.6, 0.6])

        with pytest.raises(ValueError, match="must be positive"):
            randomization.invariant_check(5000, 5000, expected_ratio=[-0.5, 1.5])

        with pytest.raises(ValueError, match="exactly 2 elements"):
            randomization.invariant_check(5000, 5000, expected_ratio=[0.5, 0.25, 0.25])
