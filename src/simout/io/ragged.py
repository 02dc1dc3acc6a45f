# src/simout/io/ragged.py
"""
CSR-style encodings for per-hit maps whose keys and lengths vary hit to hit.

Three shapes cover every hit category:

  scalar map    name -> float          (raw, digitized)
      keys (K,) str, ptr (H+1,) i8, key_id (M,) i4, value (M,) f8

  sequence map  name -> [numbers]      (raw_steps, multi_digitized)
      keys (K,) str, ptr (H+1,) i8, key_id (M,) i4, value_ptr (M+1,) i8, values (V,)

  pair map      number -> number       (signal_vs_time, quantized)
      ptr (H+1,) i8, key (M,), value (M,)

H = hits, M = total entries, K = distinct names. Absent keys are simply not
stored, so a hit decodes to exactly the mapping it was built from.
"""
from __future__ import annotations
from typing import Any, Dict, List, Mapping, Sequence

import h5py
import numpy as np


def _vocabulary(maps: Sequence[Mapping[str, Any]]) -> Dict[str, int]:
    vocab: Dict[str, int] = {}
    for m in maps:
        for k in m:
            if k not in vocab:
                vocab[k] = len(vocab)
    return vocab


def _keys_array(vocab: Mapping[str, int]) -> np.ndarray:
    return np.array(list(vocab), dtype=h5py.string_dtype())


def pack_scalar_maps(maps: Sequence[Mapping[str, float]]) -> Dict[str, np.ndarray]:
    vocab = _vocabulary(maps)
    ptr = np.zeros(len(maps) + 1, dtype=np.int64)
    key_id: List[int] = []
    value: List[float] = []
    for i, m in enumerate(maps):
        for k, v in m.items():
            key_id.append(vocab[k])
            value.append(float(v))
        ptr[i + 1] = len(value)
    return {
        "keys": _keys_array(vocab),
        "ptr": ptr,
        "key_id": np.asarray(key_id, dtype=np.int32),
        "value": np.asarray(value, dtype=np.float64),
    }


def unpack_scalar_maps(g: h5py.Group) -> List[Dict[str, float]]:
    keys = list(g["keys"].asstr()[...])
    ptr = g["ptr"][...]
    key_id = g["key_id"][...]
    value = g["value"][...]
    out = []
    for i in range(len(ptr) - 1):
        a, b = int(ptr[i]), int(ptr[i + 1])
        out.append({keys[int(key_id[j])]: float(value[j]) for j in range(a, b)})
    return out


def pack_sequence_maps(maps: Sequence[Mapping[str, Sequence[Any]]], dtype) -> Dict[str, np.ndarray]:
    vocab = _vocabulary(maps)
    ptr = np.zeros(len(maps) + 1, dtype=np.int64)
    key_id: List[int] = []
    value_ptr: List[int] = [0]
    values: List[Any] = []
    for i, m in enumerate(maps):
        for k, seq in m.items():
            key_id.append(vocab[k])
            values.extend(seq)
            value_ptr.append(len(values))
        ptr[i + 1] = len(key_id)
    return {
        "keys": _keys_array(vocab),
        "ptr": ptr,
        "key_id": np.asarray(key_id, dtype=np.int32),
        "value_ptr": np.asarray(value_ptr, dtype=np.int64),
        "values": np.asarray(values, dtype=dtype),
    }


def unpack_sequence_maps(g: h5py.Group) -> List[Dict[str, List[Any]]]:
    keys = list(g["keys"].asstr()[...])
    ptr = g["ptr"][...]
    key_id = g["key_id"][...]
    value_ptr = g["value_ptr"][...]
    values = g["values"][...].tolist()
    out = []
    for i in range(len(ptr) - 1):
        m = {}
        for j in range(int(ptr[i]), int(ptr[i + 1])):
            m[keys[int(key_id[j])]] = values[int(value_ptr[j]):int(value_ptr[j + 1])]
        out.append(m)
    return out


def pack_pair_maps(maps: Sequence[Mapping[Any, Any]], key_dtype, value_dtype) -> Dict[str, np.ndarray]:
    ptr = np.zeros(len(maps) + 1, dtype=np.int64)
    key: List[Any] = []
    value: List[Any] = []
    for i, m in enumerate(maps):
        for k in sorted(m):
            key.append(k)
            value.append(m[k])
        ptr[i + 1] = len(key)
    return {
        "ptr": ptr,
        "key": np.asarray(key, dtype=key_dtype),
        "value": np.asarray(value, dtype=value_dtype),
    }


def unpack_pair_maps(g: h5py.Group) -> List[Dict[Any, Any]]:
    ptr = g["ptr"][...]
    key = g["key"][...].tolist()
    value = g["value"][...].tolist()
    return [
        {key[j]: value[j] for j in range(int(ptr[i]), int(ptr[i + 1]))}
        for i in range(len(ptr) - 1)
    ]


def write_columns(g: h5py.Group, cols: Mapping[str, np.ndarray]) -> None:
    for name, data in cols.items():
        if name in g:
            del g[name]
        if data.dtype.kind == "O":
            ds = g.create_dataset(name, shape=data.shape, dtype=h5py.string_dtype())
            if data.size:
                ds[...] = data
        else:
            g.create_dataset(name, data=data)
