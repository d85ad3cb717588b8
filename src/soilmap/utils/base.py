"""Base classes and protocols for pipelines."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class ValidationResult:
    """Result of data validation.

    Attributes:
        valid: Whether the data passed all validation checks
        total_rows: Total number of records (grid points, ring vertices)
        missing_pct: Percentage of missing values (0-100)
        outliers_count: Number of values outside the expected domain
        issues: List of validation issues found
        stats: Dictionary of summary statistics
    """

    valid: bool
    total_rows: int
    missing_pct: float
    outliers_count: int = 0
    issues: list[str] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        status = "VALID" if self.valid else "INVALID"
        return (
            f"ValidationResult({status}, "
            f"rows={self.total_rows}, "
            f"missing={self.missing_pct:.1f}%, "
            f"outliers={self.outliers_count})"
        )


class BasePipeline(ABC):
    """Abstract base class for data collaborators.

    This is the minimal interface every pipeline must satisfy.
    Use StaticPipeline for data that is downloaded once per region (boundaries).
    """

    @abstractmethod
    def validate(self, data: Any) -> ValidationResult:
        """Validate data for quality and completeness.

        Args:
            data: Data to validate

        Returns:
            ValidationResult with quality metrics and issues
        """
        pass


class StaticPipeline(BasePipeline):
    """Base class for static/spatial data pipelines (administrative boundaries).

    These pipelines download data for a region (not a time range).
    """

    @abstractmethod
    def download(self, **kwargs) -> Path:
        """Download static data from the source.

        Args:
            **kwargs: Source-specific parameters

        Returns:
            Path to downloaded data.
        """
        pass

    @abstractmethod
    def process(self, raw_path: Path) -> Any:
        """Process raw data into usable format.

        Args:
            raw_path: Path to raw data from download().

        Returns:
            Processed data
        """
        pass

    def run(
        self,
        raise_on_invalid: bool = True,
        **kwargs
    ) -> tuple[Any, ValidationResult]:
        """Run the full pipeline: download → process → validate.

        Args:
            raise_on_invalid: If True, raise ValueError when validation fails
            **kwargs: Parameters passed to download()

        Returns:
            Tuple of (processed data, validation result)

        Raises:
            ValueError: If raise_on_invalid=True and validation fails
        """
        raw_path = self.download(**kwargs)
        data = self.process(raw_path)
        validation = self.validate(data)

        if raise_on_invalid and not validation.valid:
            raise ValueError(
                f"Data validation failed: {validation.issues}. "
                f"Missing: {validation.missing_pct:.1f}%, "
                f"Outliers: {validation.outliers_count}"
            )

        return data, validation
