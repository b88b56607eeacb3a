from __future__ import absolute_import


def manifest_entry(model_id, version, min_version="2.49.0"):
    return {
        "model_id": model_id,
        "version": version,
        "min_version": min_version,
        "spec_key": f"community_models_specs/{model_id}/specs_v{version}.json",
    }


BASE_MANIFEST = [
    manifest_entry("pytorch-ic-mobilenet-v2", "1.0.0"),
    manifest_entry("pytorch-ic-mobilenet-v2", "2.0.0"),
    manifest_entry("pytorch-ic-mobilenet-v2", "3.0.0", min_version="99.0.0"),
    manifest_entry("tensorflow-ic-bit-m-r101x1", "1.0.0"),
    manifest_entry("xgboost-classification-model", "1.0.0"),
    manifest_entry("huggingface-spc-bert-base-cased", "1.0.0"),
    manifest_entry("sklearn-regression-linear", "1.1.0"),
]

BASE_SPEC = {
    "model_id": "pytorch-ic-mobilenet-v2",
    "url": "https://pytorch.org/hub/pytorch_vision_mobilenet_v2/",
    "version": "1.0.0",
    "min_sdk_version": "2.49.0",
    "training_supported": True,
    "incremental_training_supported": True,
    "hosting_ecr_specs": {
        "framework": "pytorch",
        "framework_version": "1.10.2",
        "py_version": "py38",
    },
    "hosting_artifact_key": "pytorch-infer/infer-pytorch-ic-mobilenet-v2.tar.gz",
    "hosting_script_key": "source-directory-tarballs/pytorch/inference/ic/v1.0.0/sourcedir.tar.gz",
    "training_ecr_specs": {
        "framework": "pytorch",
        "framework_version": "1.10.2",
        "py_version": "py38",
    },
    "training_artifact_key": "pytorch-training/train-pytorch-ic-mobilenet-v2.tar.gz",
    "training_script_key": "source-directory-tarballs/pytorch/transfer_learning/ic/"
    "v1.0.0/sourcedir.tar.gz",
    "hyperparameters": [
        {
            "name": "epochs",
            "type": "int",
            "default": 3,
            "min": 1,
            "max": 1000,
            "scope": "algorithm",
        },
        {
            "name": "adam-learning-rate",
            "type": "float",
            "default": 0.05,
            "min": 1e-08,
            "max": 1,
            "scope": "algorithm",
        },
        {
            "name": "optimizer",
            "type": "text",
            "default": "adam",
            "options": ["adam", "sgd"],
            "scope": "algorithm",
        },
        {
            "name": "train_only_top_layer",
            "type": "bool",
            "default": "True",
            "scope": "algorithm",
        },
        {
            "name": "sagemaker_submit_directory",
            "type": "text",
            "default": "/opt/ml/input/data/code/sourcedir.tar.gz",
            "scope": "container",
        },
        {
            "name": "sagemaker_program",
            "type": "text",
            "default": "transfer_learning.py",
            "scope": "container",
        },
        {
            "name": "sagemaker_container_log_level",
            "type": "text",
            "default": "20",
            "scope": "container",
        },
    ],
    "inference_environment_variables": [
        {
            "name": "SAGEMAKER_PROGRAM",
            "type": "text",
            "default": "inference.py",
            "scope": "container",
            "required_for_model_class": True,
        },
        {
            "name": "SAGEMAKER_SUBMIT_DIRECTORY",
            "type": "text",
            "default": "/opt/ml/model/code",
            "scope": "container",
            "required_for_model_class": True,
        },
        {
            "name": "SAGEMAKER_CONTAINER_LOG_LEVEL",
            "type": "text",
            "default": "20",
            "scope": "container",
            "required_for_model_class": False,
        },
        {
            "name": "MODEL_CACHE_ROOT",
            "type": "text",
            "default": "/opt/ml/model",
            "scope": "container",
            "required_for_model_class": False,
        },
    ],
    "inference_vulnerable": False,
    "inference_dependencies": [],
    "inference_vulnerabilities": [],
    "training_vulnerable": False,
    "training_dependencies": [],
    "training_vulnerabilities": [],
    "deprecated": False,
    "default_inference_instance_type": "ml.p2.xlarge",
    "supported_inference_instance_types": ["ml.p2.xlarge", "ml.m5.xlarge"],
    "default_training_instance_type": "ml.p3.2xlarge",
    "supported_training_instance_types": ["ml.p3.2xlarge", "ml.m5.xlarge"],
}
