import os

from sptlyrics.gate import Admission, AdmissionGate, InstanceLock


def test_admission_gate_has_one_slot():
	gate = AdmissionGate()
	assert gate.try_acquire() is Admission.ACQUIRED
	assert gate.busy
	assert gate.try_acquire() is Admission.ALREADY_RUNNING
	gate.release()
	assert gate.try_acquire() is Admission.ACQUIRED


def test_instance_lock_is_exclusive(tmp_path):
	path = str(tmp_path / "run" / "sptlyrics.lock")
	first = InstanceLock(path)
	second = InstanceLock(path)

	assert first.try_acquire() is Admission.ACQUIRED
	with open(path, encoding="utf-8") as f:
		assert f.read() == str(os.getpid())

	assert second.try_acquire() is Admission.ALREADY_RUNNING

	first.release()
	assert not os.path.exists(path)
	assert second.try_acquire() is Admission.ACQUIRED
	second.release()


def test_instance_lock_context_manager(tmp_path):
	path = str(tmp_path / "sptlyrics.lock")
	with InstanceLock(path) as admission:
		assert admission is Admission.ACQUIRED
		assert InstanceLock(path).try_acquire() is Admission.ALREADY_RUNNING
	assert not os.path.exists(path)
