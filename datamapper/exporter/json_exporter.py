"""JSON exporter."""
import json
from pathlib import Path
from datetime import datetime
from typing import Any, Dict, List, Optional

from datamapper.builder.results import ConversionResult
from datamapper.schema.models import MappingDefinition


class JsonExporter:
    """Export conversion results to JSON."""

    def build(
        self,
        results: List[ConversionResult],
        mapping: MappingDefinition,
        tuples: bool = False,
    ) -> Dict[str, Any]:
        """Build the exported document: metadata plus one resource per record."""
        return {
            "metadata": {
                "created_at": datetime.now().isoformat(),
                "mapping": mapping.name or mapping.info.label,
                "source_kind": mapping.info.source_kind,
                "target_kind": mapping.info.target_kind,
                "total_records": len(results),
                "total_values": sum(len(result) for result in results),
                "skipped_maps": sum(len(result.skipped) for result in results),
            },
            "resources": [
                [list(values) for values in result.as_tuples()] if tuples else result.to_resource()
                for result in results
            ],
        }

    def export(
        self,
        output_file: Optional[Path],
        results: List[ConversionResult],
        mapping: MappingDefinition,
        tuples: bool = False,
    ) -> str:
        """Export to a JSON file; returns the JSON text."""
        text = json.dumps(self.build(results, mapping, tuples), indent=2, ensure_ascii=False, default=str)
        if output_file is not None:
            output_file = Path(output_file)
            output_file.parent.mkdir(parents=True, exist_ok=True)
            with open(output_file, "w", encoding="utf-8") as f:
                f.write(text)
        return text
