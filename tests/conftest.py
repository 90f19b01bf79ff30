from pathlib import Path

import pytest

from flow_jsonschema.config import GeneratorConfig

TYPES_JS = """//@flow

/*::
import type {Remote as Imported} from './other';

type Local = {x: number};

export type A = {|
    num: number,
    str: string,
    bool: boolean,

    numLit: 1 | 20,
    strLit: 'a' | 'bc',

    numOpt?: number,
    numNull: ?number,
|};

export type Tup = [string, number, 1 | 2];

export type Callable = {(x: number): string};

export type {Local, Imported as Renamed};
export type {Deep} from './other';
*/

module.exports = {};
"""

OTHER_JS = """//@flow
/*::
export type Remote = {name: string, tags: string[]};
export type Deep = {[key: string]: number | string};
*/
"""

EXPANSIONS = {
    "A": (
        "{|num: number, str: string, bool: boolean, numLit: 1 | 20, strLit: 'a' | 'bc', "
        "numOpt?: number, numNull: ?number|}"
    ),
    "Tup": "[string, number, 1 | 2]",
    "Callable": "{(x: number): string}",
    "Local": "{x: number}",
    "Remote": "{name: string, tags: Array<string>}",
    "Deep": "{[key: string]: number | string}",
}


@pytest.fixture()
def fast_config() -> GeneratorConfig:
    return GeneratorConfig(
        max_retries=5,
        retry_interval=0.01,
        call_timeout=0.5,
        status_notice_delay=0.05,
    )


@pytest.fixture()
def example_modules(tmp_path: Path) -> dict[str, Path]:
    types_path = tmp_path / "types.js"
    other_path = tmp_path / "other.js"
    types_path.write_text(TYPES_JS)
    other_path.write_text(OTHER_JS)
    return {"types": types_path, "./other": other_path}


@pytest.fixture()
def expansions() -> dict[str, str]:
    return dict(EXPANSIONS)
