"""
Template Registry
Static, read-only configuration for every sandbox template we know about
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

DEFAULT_START_COMMAND = "npm run dev -- --port {port}"


@dataclass(frozen=True)
class TemplateConfig:
    """Configuration for one E2B sandbox template"""

    template_id: str
    name: str

    # None for batch (code execution) templates
    default_port: Optional[int] = None

    # Web-server kind (self-heal loop) vs batch kind (agent executes code itself)
    interactive: bool = True

    # Prompt material
    file: Optional[str] = None
    libs: List[str] = field(default_factory=list)
    instructions: str = ""

    start_command: str = DEFAULT_START_COMMAND

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return {
            "template_id": self.template_id,
            "name": self.name,
            "default_port": self.default_port,
            "interactive": self.interactive,
            "file": self.file,
            "libs": list(self.libs),
            "instructions": self.instructions,
            "start_command": self.start_command,
        }


TEMPLATES: Dict[str, TemplateConfig] = {
    "code-interpreter-v1": TemplateConfig(
        template_id="code-interpreter-v1",
        name="Python data analyst",
        default_port=None,
        interactive=False,
        file="script.py",
        libs=["python", "jupyter", "numpy", "pandas", "matplotlib", "seaborn", "plotly"],
        instructions="Runs code as a Jupyter notebook cell. Strong data analysis angle. "
                     "Can use complex visualisation to explain results.",
    ),
    "nextjs-developer": TemplateConfig(
        template_id="nextjs-developer",
        name="Next.js developer",
        default_port=3000,
        file="pages/index.tsx",
        libs=["nextjs@14.2.5", "typescript", "@types/node", "@types/react",
              "@types/react-dom", "postcss", "tailwindcss", "shadcn"],
        instructions="A Next.js 13+ app that reloads automatically. Using the pages router.",
    ),
    "vue-developer": TemplateConfig(
        template_id="vue-developer",
        name="Vue.js developer",
        default_port=3000,
        file="app.vue",
        libs=["vue@latest", "nuxt@3.13.0", "tailwindcss"],
        instructions="A Vue.js 3+ app that reloads automatically. Only when asked specifically for a Vue app.",
    ),
    "streamlit-developer": TemplateConfig(
        template_id="streamlit-developer",
        name="Streamlit developer",
        default_port=8501,
        file="app.py",
        libs=["streamlit", "pandas", "numpy", "matplotlib", "requests", "seaborn", "plotly"],
        instructions="A streamlit app that reloads automatically.",
        start_command="streamlit run app.py --server.port {port} --server.headless true",
    ),
    "gradio-developer": TemplateConfig(
        template_id="gradio-developer",
        name="Gradio developer",
        default_port=7860,
        file="app.py",
        libs=["gradio", "pandas", "numpy", "matplotlib", "requests", "seaborn", "plotly"],
        instructions="A gradio app. Gradio Blocks/Interface should be called demo.",
        start_command="GRADIO_SERVER_PORT={port} python app.py",
    ),
}


def get_template(template_id: str) -> Optional[TemplateConfig]:
    """Look up a template; None when unknown (caller decides the policy)."""
    return TEMPLATES.get(template_id)


def is_known_template(template_id: str) -> bool:
    return template_id in TEMPLATES
