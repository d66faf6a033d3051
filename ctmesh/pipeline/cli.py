"""CLI 진입점: Typer 서브커맨드."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.tree import Tree

app = typer.Typer(
    name="ct-mesh",
    help="CT 볼륨 → 3D 프린팅용 STL 메쉬 변환",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="상세 로그 출력 (DEBUG)"),
):
    """CT 볼륨 → STL 변환 도구."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _make_progress_callback(progress: Progress, task_id):
    """Rich Progress 콜백 생성."""
    def callback(stage: str, metrics):
        detail = ", ".join(f"{k}={v:.1f}" if isinstance(v, float) else f"{k}={v}"
                           for k, v in metrics.as_dict().items())
        progress.update(task_id, description=f"[cyan]{stage}[/] {detail}")
    return callback


@app.command()
def export(
    input_path: Path = typer.Argument(..., help="입력 볼륨 (.npz, .nii.gz, .nrrd, .mha 또는 DICOM 디렉토리)"),
    output_dir: Path = typer.Option("output", "-o", "--output", help="출력 디렉토리"),
    name: Optional[str] = typer.Option(None, "--name", help="출력 파일명 (기본: 입력 파일 이름)"),
    threshold: str = typer.Option("HIGH_DENSITY", "--threshold", help="HU 값 또는 프리셋 (HIGH_DENSITY/MEDIUM_DENSITY/LOW_DENSITY)"),
    smooth: bool = typer.Option(False, "--smooth/--no-smooth", help="windowed-sinc 평활화"),
    ascii_stl: bool = typer.Option(False, "--ascii", help="ASCII STL로 저장"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="설정 파일 경로 (TOML, 기본: $CTMESH_CONFIG)"),
):
    """볼륨에서 등치면을 추출해 STL로 저장."""
    from ..core.errors import InvalidFilenameError
    from ..io.volume_io import load_volume
    from .config import ExportConfig, resolve_threshold
    from .export import directory_destination, export_mesh

    try:
        cfg = ExportConfig.load(config_path)
        hu = resolve_threshold(threshold)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]설정 오류[/]: {e}")
        raise typer.Exit(1)
    if ascii_stl:
        cfg.write.binary = False

    filename = name or input_path.name.split(".")[0]

    try:
        volume = load_volume(input_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]볼륨 로드 실패[/]: {e}")
        raise typer.Exit(1)

    with Progress(SpinnerColumn(), TextColumn("{task.description}"), console=console) as progress:
        task = progress.add_task("[cyan]marching-cubes[/] 시작...", total=None)
        try:
            result = export_mesh(
                volume,
                filename,
                threshold=hu,
                smoothing=smooth,
                on_progress=_make_progress_callback(progress, task),
                config=cfg,
                destination=directory_destination(output_dir),
            )
        except InvalidFilenameError as e:
            console.print(f"[red]실패[/]: {e}")
            raise typer.Exit(1)

    if result.success:
        m = result.metrics
        out_name = filename if filename.lower().endswith(".stl") else f"{filename}.stl"
        console.print(
            f"[green]완료[/]: {output_dir / out_name} "
            f"({m.triangle_count} 삼각형, {m.total_time_ms:.1f} ms)"
        )
        if m.triangle_count == 0:
            console.print(f"[yellow]경고[/]: threshold={hu:g}에서 등치면이 없습니다")
    else:
        console.print(f"[red]실패[/] ({result.state.value}, {result.failed_stage}): {result.error or ''}")
        raise typer.Exit(1)


@app.command()
def series(
    directory: Path = typer.Argument(..., help="DICOM 디렉토리"),
    recursive: bool = typer.Option(True, "--recursive/--no-recursive", help="하위 디렉토리 포함"),
):
    """DICOM 디렉토리의 환자/스터디/시리즈 구조 출력."""
    from ..dicom.grouping import group_records
    from ..dicom.reader import scan_directory

    try:
        records = scan_directory(directory, recursive=recursive)
    except FileNotFoundError as e:
        console.print(f"[red]실패[/]: {e}")
        raise typer.Exit(1)

    groups = group_records(records)
    if not groups:
        console.print(f"[yellow]DICOM 파일 없음[/]: {directory} ({len(records)} 파일 검사)")
        raise typer.Exit(1)

    tree = Tree(f"[bold]{directory}[/]")
    for patient_id, studies in groups.items():
        p_node = tree.add(f"[cyan]환자[/] {patient_id}")
        for study_id, series_map in studies.items():
            s_node = p_node.add(f"[magenta]스터디[/] {study_id}")
            for series_id, members in series_map.items():
                desc = members[0].series_description or ""
                s_node.add(f"[green]시리즈[/] {series_id} {desc} ({len(members)} slices)")
    console.print(tree)


@app.command()
def presets():
    """밀도 프리셋 목록 출력."""
    from .config import HU_THRESHOLDS

    table = Table(title="밀도 프리셋")
    table.add_column("이름")
    table.add_column("HU", justify="right")
    for preset, hu in HU_THRESHOLDS.items():
        table.add_row(preset.value, f"{hu:g}")
    console.print(table)


@app.command()
def info(
    input_path: Path = typer.Argument(..., help="입력 볼륨"),
):
    """볼륨 크기, 간격, 원점, 밀도 범위 출력."""
    from ..io.volume_io import load_volume

    try:
        volume = load_volume(input_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]볼륨 로드 실패[/]: {e}")
        raise typer.Exit(1)

    lo, hi = volume.intensity_range()
    console.print(f"[bold]{input_path}[/]")
    console.print(f"  dimensions: {volume.dimensions}")
    console.print(f"  spacing:    {volume.spacing}")
    console.print(f"  origin:     {volume.origin}")
    console.print(f"  intensity:  [{lo:g}, {hi:g}]")


if __name__ == "__main__":
    app()
