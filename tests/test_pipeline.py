"""End-to-end tests of the board analysis and the command-line tools."""

import json
import logging

import numpy as np
import pytest
from PIL import Image

import dump_gerber
import estimate_mutcaps
from mutcap_exceptions import ConfigurationError, DimensionMismatchError, MissingLayersError
from mutcap_pipeline import AnalysisParameters, analyze_board


@pytest.fixture
def restore_logging():
    """The CLIs reconfigure the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_two_layer_board(two_layer_board):
    bitmaps, gerbers = two_layer_board
    analysis = analyze_board(bitmaps, gerbers, AnalysisParameters(dpi=25.4))
    assert analysis.num_layers == 2
    assert analysis.layer_names == ['0', '1']
    assert [len(lc) for lc in analysis.components] == [1, 1]
    assert analysis.component_ids.shape == (2, 4, 4)
    assert [m.component_names for m in analysis.matches] == [['TOP'], ['BOT']]
    assert analysis.total_out_of_bounds == 0
    assert list(analysis.registry.items()) == [(0, 'N/C'), (1, 'TOP'), (2, 'BOT')]
    [row] = analysis.significant
    assert (row.name_a, row.name_b) == ('TOP', 'BOT')
    assert row.farads == pytest.approx(8.854e-12 * 4.2 * 1e-6 / 1.6e-3)
    assert analysis.images == []


def test_flood_and_ndimage_agree(two_layer_board):
    bitmaps, gerbers = two_layer_board
    params = AnalysisParameters(dpi=25.4)
    flood = analyze_board(bitmaps, gerbers, params, method='flood')
    scipy_result = analyze_board(bitmaps, gerbers, params, method='ndimage')
    assert flood.capacitances == scipy_result.capacitances
    assert np.array_equal(flood.component_ids, scipy_result.component_ids)


def test_threshold_filters_rows(two_layer_board):
    bitmaps, gerbers = two_layer_board
    analysis = analyze_board(bitmaps, gerbers, AnalysisParameters(dpi=25.4, cap_min=1e-12))
    assert len(analysis.capacitances) == 1
    assert analysis.significant == []


def test_images_rendered_with_mark(two_layer_board):
    bitmaps, gerbers = two_layer_board
    params = AnalysisParameters(dpi=25.4, mark=(0.5, 0.5))
    analysis = analyze_board(bitmaps, gerbers, params, render_images=True)
    assert len(analysis.images) == 2
    top = analysis.images[0]
    assert top.shape == (4, 4, 3)
    assert top.dtype == np.uint8
    # Crosshair through row 3 and column 0
    assert top[3, 2, 0] == 255
    assert top[0, 0, 0] == 255


def test_unnamed_components_do_not_contribute(two_layer_board, make_gerber):
    bitmaps, _ = two_layer_board
    gerbers = [make_gerber({}), make_gerber({'BOT': [(3.5, 1.5)]})]
    analysis = analyze_board(bitmaps, gerbers, AnalysisParameters(dpi=25.4))
    assert analysis.capacitances == {}
    assert analysis.significant == []


def test_empty_layer(make_gerber):
    bitmaps = [np.zeros((3, 3)), np.ones((3, 3))]
    gerbers = [make_gerber({}), make_gerber({'GND': [(1.5, 1.5)]})]
    analysis = analyze_board(bitmaps, gerbers, AnalysisParameters(dpi=25.4), render_images=True)
    assert len(analysis.components[0]) == 0
    assert not analysis.images[0].any()
    assert analysis.capacitances == {}


def test_out_of_bounds_flashes_are_counted(two_layer_board, make_gerber):
    bitmaps, _ = two_layer_board
    gerbers = [make_gerber({'TOP': [(1.5, 3.5), (-5.0, 1.0)]}), make_gerber({'BOT': [(30.0, 1.5)]})]
    analysis = analyze_board(bitmaps, gerbers, AnalysisParameters(dpi=25.4))
    assert analysis.total_out_of_bounds == 2
    assert [m.component_names for m in analysis.matches] == [['TOP'], [None]]


def test_input_errors(two_layer_board):
    bitmaps, gerbers = two_layer_board
    params = AnalysisParameters(dpi=25.4)
    with pytest.raises(MissingLayersError):
        analyze_board([], [], params)
    with pytest.raises(ConfigurationError):
        analyze_board(bitmaps, gerbers[:1], params)
    with pytest.raises(ConfigurationError):
        analyze_board(bitmaps, gerbers, params, layer_names=['only'])
    with pytest.raises(ConfigurationError):
        analyze_board(bitmaps, gerbers, AnalysisParameters(dpi=-1))
    with pytest.raises(DimensionMismatchError):
        analyze_board([bitmaps[0], np.zeros((5, 4))], gerbers, params)


def _write_board(tmp_path, two_layer_board):
    bitmaps, gerbers = two_layer_board
    board = tmp_path / 'board'
    board.mkdir()
    layers = []
    for name, bitmap, gerber in zip(['top', 'bottom'], bitmaps, gerbers):
        Image.fromarray((bitmap * 255).astype(np.uint8)).save(board / f'{name}.png')
        (board / f'{name}.gbr').write_text(gerber)
        layers.append({'name': name, 'bitmap': f'{name}.png', 'gerber': f'{name}.gbr'})
    config = {
        'input': str(board),
        'output': str(tmp_path / 'out'),
        'layers': layers,
        'origin': {'x': 0, 'y': 0},
        'dpi': 25.4,
        'eps_rel': 4.2,
        'thickness': 1.6,
        'cap_min': 0,
        'mark': {'x': 1.5, 'y': 1.5},
    }
    path = tmp_path / 'board.json'
    path.write_text(json.dumps(config))
    return path


def test_cli_end_to_end(tmp_path, two_layer_board, capsys, restore_logging):
    config_path = _write_board(tmp_path, two_layer_board)
    assert estimate_mutcaps.main(['--config', str(config_path)]) == 0
    out = tmp_path / 'out'
    assert (out / 'mutcaps.txt').read_text() == '  0.023 pF\tTOP\tBOT\n'
    assert (out / 'nets.txt').read_text() == '0 N/C\n1 TOP\n2 BOT\n'
    assert (out / 'nets-0-top.txt').exists()
    assert (out / 'net-match-1-bottom.txt').exists()
    with Image.open(out / 'layc1.png') as img:
        assert img.size == (4, 4)
        assert img.mode == 'RGB'
    assert (out / 'layc2.png').exists()
    assert 'Results written to' in capsys.readouterr().out


def test_cli_without_images(tmp_path, two_layer_board, restore_logging):
    config_path = _write_board(tmp_path, two_layer_board)
    assert estimate_mutcaps.main(['--config', str(config_path), '--no-images',
                                  '--method', 'ndimage']) == 0
    assert (tmp_path / 'out' / 'mutcaps.txt').exists()
    assert not (tmp_path / 'out' / 'layc1.png').exists()


def test_cli_reports_errors(tmp_path, capsys, restore_logging):
    assert estimate_mutcaps.main(['--config', str(tmp_path / 'missing.json')]) == 1
    assert 'Error' in capsys.readouterr().out


def test_cli_missing_bitmap(tmp_path, two_layer_board, capsys, restore_logging):
    config_path = _write_board(tmp_path, two_layer_board)
    (tmp_path / 'board' / 'top.png').unlink()
    assert estimate_mutcaps.main(['--config', str(config_path)]) == 1
    assert 'top.png' in capsys.readouterr().out


def test_cli_log_file(tmp_path, two_layer_board, restore_logging):
    config_path = _write_board(tmp_path, two_layer_board)
    log_path = tmp_path / 'run.log'
    assert estimate_mutcaps.main(['--config', str(config_path), '--verbose',
                                  '--log-file', str(log_path), '--no-images']) == 0
    assert 'Total number of unique nets: 3' in log_path.read_text()


def test_dump_gerber(tmp_path, make_gerber, capsys, restore_logging):
    path = tmp_path / 'layer.gbr'
    path.write_text(make_gerber({'A': [(1.0, 2.0)]}).replace('M02*', 'G54D10*\nM02*'))
    assert dump_gerber.main([str(path), '--nets']) == 0
    assert capsys.readouterr().out == 'A 1 1.0 2.0\n'
    assert dump_gerber.main([str(path), '--unknown']) == 0
    out = capsys.readouterr().out
    assert 'G54D10' in out
    assert 'SetMode' not in out.splitlines()[0]
    assert dump_gerber.main([str(tmp_path / 'missing.gbr')]) == 1
