"""
Workflow visualization utilities.

This module renders the event graph of a workflow definition (event kinds,
the steps they trigger, and the kinds those steps declare as output) as
Cytoscape.js graph data and as a standalone HTML page.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .workflow import Workflow

logger = logging.getLogger(__name__)


def generate_graph_data(workflow: Workflow) -> Dict[str, List[Dict[str, Any]]]:
    """
    Generate graph data for a workflow.

    Event kinds and steps become nodes. Edges go from an event kind to each
    step it triggers ("triggers") and from a step to each kind named in its
    return annotation ("produces"). Cycles in the workflow show up as
    cycles in the graph.

    Args:
        workflow: Workflow instance to analyze

    Returns:
        Dictionary with "nodes" and "edges" lists in Cytoscape element format
    """
    nodes: List[Dict[str, Any]] = []
    edges: List[Dict[str, Any]] = []
    event_nodes: Dict[str, str] = {}
    edge_ids = set()

    def event_node(event_type: type) -> str:
        type_name = event_type.__name__
        if type_name not in event_nodes:
            event_nodes[type_name] = f"event_{type_name}"
            nodes.append({"data": {"id": event_nodes[type_name], "label": type_name, "type": "event"}})
        return event_nodes[type_name]

    def add_edge(source: str, target: str, label: str) -> None:
        edge_id = f"{source}_to_{target}"
        if edge_id in edge_ids:
            return
        edge_ids.add(edge_id)
        edges.append({"data": {"id": edge_id, "source": source, "target": target, "label": label}})

    for registered in workflow.steps:
        step_id = f"step_{registered.name}"
        nodes.append({"data": {"id": step_id, "label": registered.name, "type": "step"}})

        for event_type in registered.input_event_types:
            add_edge(event_node(event_type), step_id, "triggers")
        for event_type in registered.output_event_types:
            add_edge(step_id, event_node(event_type), "produces")

    return {"nodes": nodes, "edges": edges}


_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <title>Workflow: {title}</title>
    <meta charset="UTF-8">
    <style>
        body {{ font-family: Arial, sans-serif; margin: 0; background-color: #f9f9f9; }}
        #cy {{ width: 100%; height: 100vh; position: absolute; top: 0; left: 0; }}
        .info-panel {{
            position: absolute; top: 10px; right: 10px; z-index: 10;
            background-color: rgba(255, 255, 255, 0.9); border: 1px solid #ccc;
            border-radius: 5px; padding: 15px;
        }}
    </style>
</head>
<body>
    <div id="cy"></div>
    <div class="info-panel">
        <h2>Workflow: {title}</h2>
        <p><strong>Steps:</strong> {step_count}</p>
        <p><strong>Events:</strong> {event_count}</p>
    </div>
    <script src="https://cdnjs.cloudflare.com/ajax/libs/cytoscape/3.25.0/cytoscape.min.js"></script>
    <script src="https://cdnjs.cloudflare.com/ajax/libs/dagre/0.8.5/dagre.min.js"></script>
    <script src="https://cdnjs.cloudflare.com/ajax/libs/cytoscape-dagre/2.5.0/cytoscape-dagre.min.js"></script>
    <script>
        document.addEventListener('DOMContentLoaded', function() {{
            cytoscape.use(cytoscapeDagre);
            cytoscape({{
                container: document.getElementById('cy'),
                elements: {elements},
                style: [
                    {{ selector: 'node', style: {{ 'label': 'data(label)', 'text-valign': 'center',
                        'width': 'label', 'height': 'label', 'padding': '12px' }} }},
                    {{ selector: 'node[type="step"]', style: {{ 'background-color': '#6FB1FC', 'shape': 'rectangle' }} }},
                    {{ selector: 'node[type="event"]', style: {{ 'background-color': '#F5A45D', 'shape': 'ellipse' }} }},
                    {{ selector: 'edge', style: {{ 'width': 2, 'line-color': '#999', 'target-arrow-color': '#999',
                        'target-arrow-shape': 'triangle', 'curve-style': 'bezier', 'label': 'data(label)',
                        'font-size': '10px' }} }}
                ],
                layout: {{ name: 'dagre', rankDir: 'LR', padding: 50 }}
            }});
        }});
    </script>
</body>
</html>
"""


def draw_workflow(workflow: Workflow, filename: Optional[Union[str, Path]] = None) -> str:
    """
    Draw a workflow and optionally save it to a file.

    Args:
        workflow: Workflow instance to visualize
        filename: Optional path of the HTML file to write

    Returns:
        HTML string containing the visualization
    """
    graph_data = generate_graph_data(workflow)
    html = _HTML_TEMPLATE.format(
        title=workflow.__class__.__name__,
        step_count=sum(1 for n in graph_data["nodes"] if n["data"]["type"] == "step"),
        event_count=sum(1 for n in graph_data["nodes"] if n["data"]["type"] == "event"),
        elements=json.dumps(graph_data),
    )

    if filename:
        Path(filename).write_text(html, encoding="utf-8")
        logger.info(f"Workflow visualization saved to {filename}")

    return html
