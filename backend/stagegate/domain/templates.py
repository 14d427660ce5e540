"""Project templates and the edge -> condition set catalog.

Stage sequences and edge conditions are configuration data. The built-in
templates below are the standard laboratory project templates; deployments
may bind additional edges on a ConditionCatalog at startup.
"""

import uuid
from dataclasses import dataclass, field

from stagegate.domain.conditions import ConditionType, TransitionCondition
from stagegate.domain.stages import Stage, StageGraph


@dataclass(frozen=True)
class StageTemplate:
    name: str
    description: str
    order: int
    estimated_duration: int
    deliverables: tuple[str, ...] = ()
    prerequisites: frozenset[str] = frozenset()


@dataclass(frozen=True)
class ProjectTemplate:
    key: str
    name: str
    description: str
    stages: tuple[StageTemplate, ...]
    # (from stage name, to stage name) -> conditions
    edge_conditions: dict[tuple[str, str], tuple[TransitionCondition, ...]] = field(default_factory=dict)

    @property
    def estimated_duration(self) -> int:
        return sum(s.estimated_duration for s in self.stages)


# Generic gate used for any edge without a specific binding
GENERIC_CONDITIONS: tuple[TransitionCondition, ...] = (
    TransitionCondition(
        id="task_completion_general",
        name="任务完成度检查",
        description="确保当前阶段所有任务已完成",
        type=ConditionType.TASK_COMPLETION,
    ),
    TransitionCondition(
        id="approval_general",
        name="阶段负责人审批",
        description="阶段负责人已确认可以进入下一阶段",
        type=ConditionType.APPROVAL,
        approver="stage_owner",
    ),
)


PRODUCT_REGISTRATION = ProjectTemplate(
    key="product_registration",
    name="产品注册标准模板",
    description="用于产品注册项目的标准模板，包含完整的注册流程和阶段配置",
    stages=(
        StageTemplate("前期准备", "收集产品资料，准备注册文件", 1, 7, ("产品技术文档", "质量标准文件")),
        StageTemplate("检测验证", "进行产品检测和验证", 2, 14, ("检测报告", "验证报告")),
        StageTemplate("注册申报", "提交注册申请材料", 3, 30, ("注册申请书", "技术审查报告")),
    ),
    edge_conditions={
        ("前期准备", "检测验证"): (
            TransitionCondition(
                id="task_completion_1",
                name="任务完成度检查",
                description="确保当前阶段所有必需任务已完成",
                type=ConditionType.TASK_COMPLETION,
            ),
            TransitionCondition(
                id="document_1",
                name="文档完整性检查",
                description="验证所有必需文档已上传并审核通过",
                type=ConditionType.DOCUMENT,
            ),
            TransitionCondition(
                id="data_quality_1",
                name="数据质量审核",
                description="检查数据完整性和准确性",
                type=ConditionType.DATA_QUALITY,
            ),
        ),
        ("检测验证", "注册申报"): (
            TransitionCondition(
                id="task_completion_2",
                name="检测任务完成",
                description="所有检测项目已完成并通过质控",
                type=ConditionType.TASK_COMPLETION,
            ),
            TransitionCondition(
                id="approval_1",
                name="质量经理审批",
                description="质量经理已审核并批准检测结果",
                type=ConditionType.APPROVAL,
                approver="quality_manager",
            ),
            TransitionCondition(
                id="document_2",
                name="检测报告生成",
                description="检测报告已生成并经过审核",
                type=ConditionType.DOCUMENT,
                documents=("检测报告",),
            ),
        ),
    },
)

RESEARCH_SERVICE = ProjectTemplate(
    key="research_service",
    name="科研服务标准模板",
    description="用于科研服务项目的标准模板，支持多中心协作",
    stages=(
        StageTemplate("项目启动", "项目启动会议，确定研究方案", 1, 3, ("研究方案", "项目计划书")),
        StageTemplate("样本收集", "收集和处理研究样本", 2, 21, ("样本清单", "质控报告")),
        StageTemplate("数据分析", "进行数据分析和结果解读", 3, 14, ("分析报告", "数据图表")),
        StageTemplate("报告撰写", "撰写最终研究报告", 4, 7, ("最终报告", "数据包")),
    ),
)

CLINICAL_DETECTION = ProjectTemplate(
    key="clinical_detection",
    name="临床检测标准模板",
    description="用于临床检测项目的标准模板，注重质量控制",
    stages=(
        StageTemplate("样本接收", "接收和登记临床样本", 1, 1, ("样本登记表", "接收确认单")),
        StageTemplate("样本检测", "进行样本检测分析", 2, 3, ("检测数据", "质控记录")),
        StageTemplate("结果审核", "审核检测结果和质量", 3, 1, ("审核报告", "质量评估")),
        StageTemplate("报告发放", "生成和发放检测报告", 4, 1, ("检测报告", "发放记录")),
    ),
    edge_conditions={
        ("样本检测", "结果审核"): (
            TransitionCondition(
                id="task_completion_detection",
                name="检测任务完成",
                description="所有样本检测任务已完成",
                type=ConditionType.TASK_COMPLETION,
            ),
            TransitionCondition(
                id="data_quality_detection",
                name="质控数据审核",
                description="检测批次无未关闭的质量问题",
                type=ConditionType.DATA_QUALITY,
            ),
        ),
    },
)

TEMPLATES: dict[str, ProjectTemplate] = {
    t.key: t for t in (PRODUCT_REGISTRATION, RESEARCH_SERVICE, CLINICAL_DETECTION)
}


def get_template(key: str) -> ProjectTemplate:
    """Return a built-in project template.

    Raises:
        ValueError: If the key is not a known template
    """
    if key not in TEMPLATES:
        raise ValueError(f"Unknown project template: {key}. Must be one of {sorted(TEMPLATES)}.")
    return TEMPLATES[key]


def stages_from_template(project_id: str, template: ProjectTemplate) -> list[Stage]:
    """Instantiate NOT_STARTED stages for a project from a template."""
    return [
        Stage(
            id=uuid.uuid4().hex,
            project_id=project_id,
            order=st.order,
            name=st.name,
            description=st.description,
            estimated_duration=st.estimated_duration,
            deliverables=st.deliverables,
            prerequisites=st.prerequisites,
        )
        for st in template.stages
    ]


class ConditionCatalog:
    """Static binding of condition sets to stage edges.

    Lookup order for an edge (template_key, from name, to name):
        1. An explicit binding for that template and edge
        2. An explicit binding for the edge on any template (template_key None)
        3. The template's default set
        4. The catalog-wide default set

    A binding to an empty tuple makes the edge trivially admissible.
    """

    def __init__(self, default: tuple[TransitionCondition, ...] = GENERIC_CONDITIONS):
        self._edges: dict[tuple[str | None, str, str], tuple[TransitionCondition, ...]] = {}
        self._template_defaults: dict[str, tuple[TransitionCondition, ...]] = {}
        self._default = tuple(default)

    @classmethod
    def from_templates(cls, templates: dict[str, ProjectTemplate] | None = None) -> "ConditionCatalog":
        catalog = cls()
        for template in (templates or TEMPLATES).values():
            for (from_name, to_name), conditions in template.edge_conditions.items():
                catalog.bind_edge(from_name, to_name, conditions, template_key=template.key)
        return catalog

    def bind_edge(
        self,
        from_name: str,
        to_name: str,
        conditions: tuple[TransitionCondition, ...] | list[TransitionCondition],
        template_key: str | None = None,
    ) -> None:
        ids = [c.id for c in conditions]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate condition ids on edge {from_name} -> {to_name}: {ids}")
        self._edges[(template_key, from_name, to_name)] = tuple(conditions)

    def set_template_default(self, template_key: str, conditions: tuple[TransitionCondition, ...]) -> None:
        self._template_defaults[template_key] = tuple(conditions)

    def conditions_for(self, graph: StageGraph, from_stage: Stage, to_stage: Stage) -> list[TransitionCondition]:
        key = graph.template_key
        for lookup in ((key, from_stage.name, to_stage.name), (None, from_stage.name, to_stage.name)):
            if lookup in self._edges:
                return list(self._edges[lookup])
        if key is not None and key in self._template_defaults:
            return list(self._template_defaults[key])
        return list(self._default)
